import pytest

from tradecore.core.exceptions import NotFoundError, TerminalStateError
from tradecore.enums.transaction import DisputeStatus
from tradecore.models.dispute import DisputeRecord
from tradecore.services import dispute_ledger, transaction_service

from conftest import BUYER, SELLER


def test_every_disagreement_is_recorded(db, open_tx):
    first = open_tx()
    second = open_tx()
    transaction_service.disagree(db, first.id, SELLER, "item not as described")
    transaction_service.disagree(db, second.id, BUYER, "seller never showed up")

    disputes = dispute_ledger.list_disputes(db)

    assert {d.transaction_id for d in disputes} == {first.id, second.id}
    by_tx = {d.transaction_id: d for d in disputes}
    assert by_tx[first.id].raised_by == SELLER
    assert by_tx[first.id].reason == "item not as described"
    assert by_tx[first.id].thread_id == first.thread_id
    assert by_tx[second.id].listing_id == second.listing_id
    assert all(d.status is DisputeStatus.OPEN for d in disputes)


def test_failed_second_disagree_leaves_one_record(db, open_tx):
    transaction = open_tx()
    transaction_service.disagree(db, transaction.id, SELLER, "broken on arrival")

    with pytest.raises(TerminalStateError):
        transaction_service.disagree(db, transaction.id, BUYER, "it was fine")

    assert db.query(DisputeRecord).count() == 1
    assert dispute_ledger.get_dispute(db, transaction.id).raised_by == SELLER


def test_status_filter_and_paging(db, open_tx):
    for n in range(3):
        transaction = open_tx()
        transaction_service.disagree(db, transaction.id, BUYER, f"problem {n}")

    assert len(dispute_ledger.list_disputes(db, status=DisputeStatus.OPEN)) == 3
    assert dispute_ledger.list_disputes(db, status=DisputeStatus.RESOLVED) == []
    assert len(dispute_ledger.list_disputes(db, limit=2)) == 2
    assert len(dispute_ledger.list_disputes(db, skip=2, limit=2)) == 1


def test_missing_dispute(db, open_tx):
    transaction = open_tx()
    with pytest.raises(NotFoundError):
        dispute_ledger.get_dispute(db, transaction.id)
