import pytest

from communal_rewards.errors import EventNotFound, Unauthorized
from communal_rewards.models.redemption import RedemptionStatus
from communal_rewards.services.admin import AdminService
from communal_rewards.services.auth import AuthorizationGate
from communal_rewards.services.wallets import WalletService

from conftest import USER_WALLET


@pytest.fixture()
def admin(store, coordinator):
    store.set_admin("admin-1", "admin@example.com")
    return AdminService(store, AuthorizationGate(store), coordinator)


def test_non_admin_cannot_redeem(admin, submitter, make_event):
    event = make_event()

    with pytest.raises(Unauthorized):
        admin.redeem_event("user-1", event.id)
    assert submitter.submissions == []


def test_empty_user_is_not_admin(store):
    assert AuthorizationGate(store).is_admin("") is False


def test_admin_lists_all_events(admin, make_event):
    make_event(user_id="alice")
    make_event(user_id="bob")

    assert len(admin.list_events("admin-1")) == 2

    with pytest.raises(Unauthorized):
        admin.list_events("alice")


def test_admin_redeems_and_sees_transaction(admin, store, make_event):
    WalletService(store).on_wallet_connected("user-1", "", USER_WALLET)
    event = make_event()

    result = admin.redeem_event("admin-1", event.id)
    details = admin.event_details("admin-1", event.id)

    assert result.status == RedemptionStatus.REDEEMED
    assert details.event.is_redeemed is True
    assert [tx.transaction_hash for tx in details.transactions] == [result.transaction_hash]


def test_redeem_reports_unbound_wallet(admin, make_event):
    result = admin.redeem_event("admin-1", make_event().id)

    assert result.status == RedemptionStatus.FAILED
    assert result.error_code == "unbound_wallet"


def test_unknown_event(admin):
    with pytest.raises(EventNotFound):
        admin.redeem_event("admin-1", "missing")
    with pytest.raises(EventNotFound):
        admin.event_details("admin-1", "missing")
