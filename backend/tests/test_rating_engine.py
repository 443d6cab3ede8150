import pytest

from tradecore.core.exceptions import (
    DuplicateRatingError,
    InvalidStateError,
    NotFoundError,
    NotParticipantError,
    ValidationError,
)
from tradecore.enums.transaction import PartyRole
from tradecore.models.notification import Notification, NotificationType
from tradecore.models.rating import RatingEvent, RatingSummary
from tradecore.services import rating_service, transaction_service

from conftest import BUYER, SELLER, STRANGER


def test_buyer_rating_lands_in_sellers_seller_bucket(db, completed_tx):
    """Scenario D."""
    transaction = completed_tx()

    summary = rating_service.submit_rating(db, transaction.id, BUYER, 5)

    assert summary.user_id == SELLER
    assert summary.seller_average == 5.0
    assert summary.seller_count == 1
    assert summary.overall_average == 5.0
    assert summary.overall_count == 1
    assert summary.buyer_count == 0
    assert summary.buyer_average is None

    [event] = db.query(RatingEvent).all()
    assert event.role is PartyRole.BUYER
    assert event.rated_user_id == SELLER


def test_second_rating_by_same_rater_is_rejected(db, completed_tx):
    """Scenario E."""
    transaction = completed_tx()
    rating_service.submit_rating(db, transaction.id, BUYER, 5)
    before = rating_service.get_summary(db, SELLER).counters()

    with pytest.raises(DuplicateRatingError):
        rating_service.submit_rating(db, transaction.id, BUYER, 1)

    assert rating_service.get_summary(db, SELLER).counters() == before
    assert db.query(RatingEvent).count() == 1


def test_seller_rating_lands_in_buyers_buyer_bucket(db, completed_tx):
    transaction = completed_tx()

    summary = rating_service.submit_rating(db, transaction.id, SELLER, 3, "quick pickup")

    assert summary.user_id == BUYER
    assert summary.buyer_average == 3.0
    assert summary.buyer_count == 1
    assert summary.seller_count == 0
    assert summary.overall_count == 1


def test_both_sides_can_rate_the_same_transaction(db, completed_tx):
    transaction = completed_tx()

    rating_service.submit_rating(db, transaction.id, BUYER, 4)
    rating_service.submit_rating(db, transaction.id, SELLER, 2)

    assert rating_service.get_summary(db, SELLER).seller_average == 4.0
    assert rating_service.get_summary(db, BUYER).buyer_average == 2.0


def test_averages_fold_across_roles(db, completed_tx):
    # SELLER sells twice and buys once
    first = completed_tx(BUYER, SELLER)
    second = completed_tx(STRANGER, SELLER)
    third = completed_tx(SELLER, BUYER)

    rating_service.submit_rating(db, first.id, BUYER, 5)
    rating_service.submit_rating(db, second.id, STRANGER, 4)
    summary = rating_service.submit_rating(db, third.id, BUYER, 1)

    assert summary.seller_count == 2
    assert summary.seller_average == 4.5
    assert summary.buyer_count == 1
    assert summary.buyer_average == 1.0
    assert summary.overall_count == 3
    assert summary.overall_average == pytest.approx(10 / 3)


def test_rating_requires_completed_transaction(db, open_tx):
    transaction = open_tx()
    with pytest.raises(InvalidStateError):
        rating_service.submit_rating(db, transaction.id, BUYER, 5)

    transaction_service.mark_complete(db, transaction.id, BUYER)
    with pytest.raises(InvalidStateError):
        rating_service.submit_rating(db, transaction.id, BUYER, 5)


def test_rating_disputed_transaction_is_rejected(db, open_tx):
    transaction = open_tx()
    transaction_service.disagree(db, transaction.id, BUYER, "no show")

    with pytest.raises(InvalidStateError):
        rating_service.submit_rating(db, transaction.id, SELLER, 1)


def test_rating_by_non_participant(db, completed_tx):
    transaction = completed_tx()
    with pytest.raises(NotParticipantError):
        rating_service.submit_rating(db, transaction.id, STRANGER, 5)


def test_rating_unknown_transaction(db):
    with pytest.raises(NotFoundError):
        rating_service.submit_rating(db, 404, BUYER, 5)


@pytest.mark.parametrize("score", [0, 6, -1, 2.5, True, "5"])
def test_score_out_of_range(db, completed_tx, score):
    transaction = completed_tx()
    with pytest.raises(ValidationError):
        rating_service.submit_rating(db, transaction.id, BUYER, score)
    assert db.query(RatingEvent).count() == 0


def test_new_member_summary_is_distinct_from_zero(db):
    summary = rating_service.get_summary(db, "brand-new-user")

    assert summary.overall_count == 0
    assert summary.overall_average is None
    assert summary.seller_average is None
    assert summary.buyer_average is None
    # Nothing is written for a read
    assert db.query(RatingSummary).count() == 0


def test_rated_user_is_notified(db, completed_tx):
    transaction = completed_tx()
    rating_service.submit_rating(db, transaction.id, BUYER, 4)

    notification = (
        db.query(Notification)
        .filter(Notification.type == NotificationType.RATING_RECEIVED)
        .one()
    )
    assert notification.user_id == SELLER
    assert notification.payload["score"] == 4


def test_cache_equals_replay(db, completed_tx):
    for score in (5, 3, 4, 1):
        transaction = completed_tx()
        rating_service.submit_rating(db, transaction.id, BUYER, score)
        rating_service.submit_rating(db, transaction.id, SELLER, 6 - score)

    for user_id in (BUYER, SELLER):
        assert rating_service.summary_matches_log(db, user_id)
        cached = rating_service.get_summary(db, user_id)
        replayed = rating_service.replay_summary(db, user_id)
        assert cached.overall_average == replayed.overall_average


def test_rebuild_repairs_drifted_cache(db, completed_tx):
    transaction = completed_tx()
    rating_service.submit_rating(db, transaction.id, BUYER, 2)

    # Simulate a crash that left the cache behind the log
    summary = db.query(RatingSummary).filter(RatingSummary.user_id == SELLER).one()
    summary.overall_count = 7
    summary.seller_total = 0
    db.commit()
    assert not rating_service.summary_matches_log(db, SELLER)

    rebuilt = rating_service.rebuild_summary(db, SELLER)

    assert rebuilt.overall_count == 1
    assert rebuilt.seller_average == 2.0
    assert rating_service.summary_matches_log(db, SELLER)


def test_rebuild_for_unrated_user_writes_nothing(db):
    rebuilt = rating_service.rebuild_summary(db, STRANGER)

    assert rebuilt.overall_count == 0
    assert rebuilt.overall_average is None
    assert db.query(RatingSummary).count() == 0


def test_rebuild_all_recreates_missing_rows(db, completed_tx):
    transaction = completed_tx()
    rating_service.submit_rating(db, transaction.id, BUYER, 5)
    rating_service.submit_rating(db, transaction.id, SELLER, 4)
    db.query(RatingSummary).delete()
    db.commit()

    assert rating_service.rebuild_all_summaries(db) == 2
    assert rating_service.get_summary(db, SELLER).seller_average == 5.0
    assert rating_service.get_summary(db, BUYER).buyer_average == 4.0


def test_transaction_ratings_reports_has_rated(db, completed_tx):
    transaction = completed_tx()
    rating_service.submit_rating(db, transaction.id, BUYER, 5, "great")

    ratings, buyer_has_rated = rating_service.get_transaction_ratings(db, transaction.id, BUYER)
    _, seller_has_rated = rating_service.get_transaction_ratings(db, transaction.id, SELLER)

    assert [r.comment for r in ratings] == ["great"]
    assert buyer_has_rated is True
    assert seller_has_rated is False

    with pytest.raises(NotParticipantError):
        rating_service.get_transaction_ratings(db, transaction.id, STRANGER)
