import pytest

from communal_rewards.db import Database
from communal_rewards.errors import ContractReverted, NetworkRejected
from communal_rewards.models.event import Confirmation, Event
from communal_rewards.redemption import RedemptionCoordinator
from communal_rewards.services.storage import StorageService

USER_WALLET = "0x08e8d6fb87ce65a250c0647a2505f085dc994423"


class FakeSubmitter:
    """In-memory stand-in for the on-chain layer that records every call"""

    def __init__(self):
        self.submissions = []
        self.confirmed = []
        self.submit_error = None
        self.confirm_error = None
        self.on_submit = None
        self.block_number = 100

    def submit_transfer(self, to_address, amount, reason):
        if self.submit_error:
            raise self.submit_error
        self.submissions.append((to_address, amount, reason))
        tx_hash = "0x" + f"{len(self.submissions):064x}"
        if self.on_submit:
            hook, self.on_submit = self.on_submit, None
            hook()
        return tx_hash

    def await_confirmation(self, transaction_hash):
        if self.confirm_error:
            raise self.confirm_error
        self.block_number += 1
        self.confirmed.append(transaction_hash)
        return Confirmation(transaction_hash=transaction_hash, block_number=self.block_number)


@pytest.fixture()
def database(tmp_path):
    database = Database()
    database.init(url=f"sqlite:///{tmp_path / 'rewards.db'}")
    yield database
    database.dispose()


@pytest.fixture()
def store(database):
    session = database.get_session()
    yield StorageService(session)
    session.close()


@pytest.fixture()
def submitter():
    return FakeSubmitter()


@pytest.fixture()
def coordinator(store, submitter):
    return RedemptionCoordinator(store, submitter)


@pytest.fixture()
def make_event(store):
    """Factory storing an event with sensible defaults"""
    def _make_event(**overrides):
        fields = dict(
            user_id="user-1",
            event_name="Beach cleanup",
            metric_1=50.0,
            metric_2=50.0,
            calculated_score=55.0,
            calculated_token_amount=5.5,
            is_redeemed=False,
        )
        fields.update(overrides)
        return store.insert_event(Event(**fields))
    return _make_event


@pytest.fixture()
def network_rejected():
    return NetworkRejected("user rejected the request")


@pytest.fixture()
def contract_reverted():
    return ContractReverted(
        "redeem reverted: Insufficient tokens in owner account",
        reason="Insufficient tokens in owner account",
    )
