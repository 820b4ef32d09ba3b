"""Tests for the marketplace service."""

import threading
from datetime import timedelta

import pytest

from piecejob.geo import Coordinates
from piecejob.marketplace.models import BidStatus, JobStatus
from piecejob.marketplace.service import (
    BidNotFoundError,
    InvalidStateError,
    JobNotFoundError,
    MarketplaceError,
    MarketplaceService,
    NotFoundError,
    ProviderNotFoundError,
    UnauthorizedError,
    ValidationError,
)

JOHANNESBURG = Coordinates(-26.2041, 28.0473)
CAPE_TOWN = Coordinates(-33.9249, 18.4241)


class TestErrorHierarchy:
    def test_not_found_errors_share_a_base(self):
        for error in (JobNotFoundError, BidNotFoundError, ProviderNotFoundError):
            assert issubclass(error, NotFoundError)
            assert issubclass(error, MarketplaceError)

    def test_other_errors_are_marketplace_errors(self):
        for error in (ValidationError, InvalidStateError, UnauthorizedError):
            assert issubclass(error, MarketplaceError)


class TestJobCreation:
    """Tests for job creation."""

    def test_create_job_basic(self, service, storage, post_job):
        """A new job is posted with no bids."""
        job = post_job()

        assert job.status == "posted"
        assert job.bids == []
        assert job.id
        assert job.provider_id is None
        assert job.created_at is not None

        assert storage.get_job(job.id) is job

        transitions = storage.get_transitions(job.id)
        assert len(transitions) == 1
        assert transitions[0].from_status is None
        assert transitions[0].to_status == "posted"

    def test_new_jobs_are_listed_first(self, service, post_job):
        first = post_job(title="First")
        second = post_job(title="Second")

        assert [j.id for j in service.list_jobs()] == [second.id, first.id]

    def test_coordinates_accept_mapping(self, post_job):
        job = post_job(coordinates={"latitude": -26.1, "longitude": 28.0})
        assert job.coordinates == Coordinates(-26.1, 28.0)

    def test_coordinates_accept_pair(self, post_job):
        job = post_job(coordinates=(-26.1, 28.0))
        assert job.coordinates == Coordinates(-26.1, 28.0)

    def test_coordinates_optional(self, post_job):
        assert post_job(coordinates=None).coordinates is None

    @pytest.mark.parametrize(
        "field", ["title", "description", "location", "budget", "category"]
    )
    def test_blank_required_field_rejected(self, service, post_job, field):
        with pytest.raises(ValidationError, match="required"):
            post_job(**{field: "   "})
        assert service.list_jobs() == []

    @pytest.mark.parametrize("duration", [0, -1, 2.5, True])
    def test_invalid_duration_rejected(self, post_job, duration):
        with pytest.raises(ValidationError, match="duration"):
            post_job(estimated_duration=duration)

    def test_invalid_urgency_rejected(self, post_job):
        with pytest.raises(ValidationError, match="urgency"):
            post_job(urgency="asap")

    def test_invalid_coordinates_rejected(self, post_job):
        with pytest.raises(ValidationError, match="coordinates"):
            post_job(coordinates={"latitude": 120, "longitude": 28.0})

    def test_title_too_long_rejected(self, post_job):
        with pytest.raises(ValidationError, match="too long"):
            post_job(title="x" * 201)


class TestJobRetrieval:
    """Tests for job retrieval."""

    def test_get_job_not_found(self, service):
        with pytest.raises(JobNotFoundError, match="not found"):
            service.get_job("nonexistent-id")

    def test_list_jobs_by_customer(self, service, post_job):
        post_job(customer_id="customer-A")
        post_job(customer_id="customer-B")

        a_jobs = service.get_jobs_for_customer("customer-A")
        assert len(a_jobs) == 1
        assert a_jobs[0].customer_id == "customer-A"

    def test_list_jobs_by_category_ignores_case(self, service, post_job):
        post_job(category="Gardening")
        post_job(category="Cleaning")

        jobs = service.list_jobs(category="gardening")
        assert [j.category for j in jobs] == ["Gardening"]

    def test_list_jobs_by_status(self, service, providers, post_job, bid_on):
        open_job = post_job()
        taken = post_job()
        service.accept_bid(bid_on(taken.id).id)

        assert [j.id for j in service.list_jobs(status=JobStatus.POSTED)] == [open_job.id]
        assert [j.id for j in service.list_jobs(status="confirmed")] == [taken.id]

    def test_jobs_for_provider(self, service, providers, post_job, bid_on):
        job = post_job()
        service.accept_bid(bid_on(job.id, provider_id="provider5").id)

        assert [j.id for j in service.get_jobs_for_provider("provider5")] == [job.id]
        assert service.get_jobs_for_provider("provider1") == []


class TestProximityListing:
    """Tests for location-aware listings."""

    def test_location_requires_radius(self, service, post_job):
        post_job()
        with pytest.raises(ValidationError, match="radius"):
            service.list_jobs(caller_location=JOHANNESBURG)

    def test_non_positive_radius_rejected(self, service):
        with pytest.raises(ValidationError, match="positive"):
            service.list_jobs(caller_location=JOHANNESBURG, radius_km=0)

    def test_far_jobs_excluded_and_unknown_kept(self, service, post_job):
        near = post_job(title="Near")
        post_job(title="Far", coordinates=CAPE_TOWN)
        unknown = post_job(title="Unknown", coordinates=None)

        jobs = service.list_jobs(caller_location=JOHANNESBURG, radius_km=25)

        assert [j.id for j in jobs] == [near.id, unknown.id]
        assert jobs[0].distance.endswith("km away")
        assert jobs[1].distance is None

    def test_stored_jobs_are_not_annotated(self, service, storage, post_job):
        job = post_job()
        service.list_jobs(caller_location=JOHANNESBURG, radius_km=25)
        assert storage.get_job(job.id).distance is None

    def test_providers_ranked_nearest_first(self, service, make_provider):
        service.register_provider(make_provider("far", coordinates=Coordinates(-26.0939, 27.9621)))
        service.register_provider(make_provider("near", coordinates=Coordinates(-26.19, 28.04)))
        service.register_provider(make_provider("nowhere", coordinates=None))

        ranked = service.list_providers(caller_location=JOHANNESBURG, radius_km=25)
        assert [p.id for p in ranked] == ["near", "far", "nowhere"]

    def test_providers_without_location_in_registration_order(self, service, make_provider):
        service.register_provider(make_provider("a"))
        service.register_provider(make_provider("b"))
        assert [p.id for p in service.list_providers()] == ["a", "b"]


class TestBidSubmission:
    """Tests for bidding."""

    def test_submit_bid(self, service, providers, post_job, bid_on):
        job = post_job()
        bid = bid_on(job.id)

        assert bid.status == "pending"
        assert bid.provider_name == "Sarah Mokoena"
        assert job.bids == [bid]
        assert service.get_bids_for_job(job.id) == [bid]

    def test_bids_keep_submission_order(self, service, providers, post_job, bid_on):
        job = post_job()
        first = bid_on(job.id, provider_id="provider1")
        second = bid_on(job.id, provider_id="provider5", amount="R850")

        assert [b.id for b in job.bids] == [first.id, second.id]

    @pytest.mark.parametrize("amount", ["R0", "-50", "R-10", "free", "", "RR"])
    def test_invalid_amount_rejected(self, providers, post_job, bid_on, amount):
        job = post_job()
        with pytest.raises(ValidationError):
            bid_on(job.id, amount=amount)
        assert job.bids == []

    @pytest.mark.parametrize("amount", ["R950", "950", "R1,200.50", "R 800"])
    def test_valid_amount_formats(self, providers, post_job, bid_on, amount):
        job = post_job()
        assert bid_on(job.id, amount=amount).amount == amount

    @pytest.mark.parametrize("duration", [0, -3])
    def test_non_positive_duration_rejected(self, providers, post_job, bid_on, duration):
        job = post_job()
        with pytest.raises(ValidationError, match="duration"):
            bid_on(job.id, estimated_duration=duration)

    def test_empty_message_rejected(self, providers, post_job, bid_on):
        job = post_job()
        with pytest.raises(ValidationError, match="Message"):
            bid_on(job.id, message="")

    def test_unknown_job(self, providers, bid_on):
        with pytest.raises(JobNotFoundError):
            bid_on("missing-job")

    def test_unknown_provider(self, post_job, bid_on):
        job = post_job()
        with pytest.raises(ProviderNotFoundError):
            bid_on(job.id, provider_id="ghost")

    def test_confirmed_job_accepts_no_bids(self, service, providers, post_job, bid_on):
        job = post_job()
        service.accept_bid(bid_on(job.id).id)

        with pytest.raises(InvalidStateError, match="not accepting bids"):
            bid_on(job.id, provider_id="provider5")

    def test_bids_for_provider(self, service, providers, post_job, bid_on):
        job_a = post_job()
        job_b = post_job()
        bid_on(job_a.id)
        bid_on(job_b.id)
        bid_on(job_b.id, provider_id="provider5")

        assert len(service.get_bids_for_provider("provider1")) == 2

    def test_get_bid_not_found(self, service):
        with pytest.raises(BidNotFoundError):
            service.get_bid("nope")


class TestBidAcceptance:
    """Tests for accepting bids."""

    def test_accept_bid(self, service, providers, post_job, bid_on):
        job = post_job()
        winner = bid_on(job.id, provider_id="provider1")
        loser = bid_on(job.id, provider_id="provider5", amount="R850")

        accepted_job, accepted_bid = service.accept_bid(winner.id)

        assert accepted_bid.status == "accepted"
        assert loser.status == "rejected"
        assert accepted_job.status == "confirmed"
        assert accepted_job.provider_id == "provider1"
        assert accepted_job.confirmed_at is not None
        assert accepted_job.accepted_bid is winner

    def test_at_most_one_accepted_bid(self, service, providers, post_job, bid_on):
        job = post_job()
        bids = [bid_on(job.id, provider_id=p) for p in ("provider1", "provider5")]

        service.accept_bid(bids[1].id)
        with pytest.raises(InvalidStateError):
            service.accept_bid(bids[0].id)

        accepted = [b for b in job.bids if b.status == BidStatus.ACCEPTED.value]
        assert len(accepted) == 1

    def test_accept_twice_rejected(self, service, providers, post_job, bid_on):
        job = post_job()
        bid = bid_on(job.id)
        service.accept_bid(bid.id)

        with pytest.raises(InvalidStateError, match="not pending"):
            service.accept_bid(bid.id)

    def test_accept_unknown_bid(self, service):
        with pytest.raises(BidNotFoundError):
            service.accept_bid("missing")

    def test_only_customer_may_accept(self, service, providers, post_job, bid_on):
        job = post_job(customer_id="customer1")
        bid = bid_on(job.id)

        with pytest.raises(UnauthorizedError):
            service.accept_bid(bid.id, actor_id="someone-else")

        assert bid.status == "pending"
        assert job.status == "posted"

    def test_acceptance_recorded_in_history(self, service, providers, post_job, bid_on):
        job = post_job()
        service.accept_bid(bid_on(job.id).id, actor_id="customer1")

        history = service.get_job_history(job.id)
        assert [(t.from_status, t.to_status) for t in history] == [
            (None, "posted"),
            ("posted", "confirmed"),
        ]
        assert history[1].actor_id == "customer1"

    def test_concurrent_accepts_leave_one_winner(self, service, providers, post_job, bid_on):
        job = post_job()
        bids = [bid_on(job.id, provider_id=p) for p in ("provider1", "provider5")]
        outcomes = []

        def accept(bid_id):
            try:
                service.accept_bid(bid_id)
                outcomes.append("ok")
            except InvalidStateError:
                outcomes.append("conflict")

        threads = [threading.Thread(target=accept, args=(b.id,)) for b in bids]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["conflict", "ok"]
        assert sum(1 for b in job.bids if b.status == "accepted") == 1


class TestJobLifecycle:
    """Tests for starting, completing and cancelling jobs."""

    def test_start_job(self, service, monitor, clock, providers, post_job, bid_on):
        job = post_job()
        service.accept_bid(bid_on(job.id).id)

        started = service.start_job(job.id)

        assert started.status == "in-progress"
        assert started.start_time == clock.now
        assert monitor.is_monitoring(job.id)

    def test_start_requires_confirmed(self, service, post_job):
        job = post_job()
        with pytest.raises(InvalidStateError, match="confirmed"):
            service.start_job(job.id)
        assert job.status == "posted"

    def test_start_by_stranger_rejected(self, service, providers, post_job, bid_on):
        job = post_job()
        service.accept_bid(bid_on(job.id).id)

        with pytest.raises(UnauthorizedError):
            service.start_job(job.id, actor_id="stranger")

    def test_provider_may_start(self, service, providers, post_job, bid_on):
        job = post_job()
        service.accept_bid(bid_on(job.id).id)
        assert service.start_job(job.id, actor_id="provider1").status == "in-progress"

    def test_complete_job(self, service, monitor, clock, in_progress_job):
        clock.advance(hours=3)
        completed = service.complete_job(in_progress_job.id)

        assert completed.status == "completed"
        assert completed.completed_time == clock.now
        assert not monitor.is_monitoring(in_progress_job.id)

    def test_complete_bumps_provider_job_count(self, service, in_progress_job):
        before = service.get_provider("provider1").completed_jobs
        service.complete_job(in_progress_job.id)
        assert service.get_provider("provider1").completed_jobs == before + 1

    def test_complete_requires_in_progress(self, service, post_job):
        job = post_job()
        with pytest.raises(InvalidStateError, match="in progress"):
            service.complete_job(job.id)

    def test_unknown_job_transitions(self, service):
        with pytest.raises(JobNotFoundError):
            service.start_job("missing")
        with pytest.raises(JobNotFoundError):
            service.complete_job("missing")

    def test_cancel_posted_job_rejects_bids(self, service, providers, post_job, bid_on):
        job = post_job()
        bid = bid_on(job.id)

        cancelled = service.cancel_job(job.id, actor_id="customer1", reason="No longer needed")

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at is not None
        assert bid.status == "rejected"
        assert service.get_job_history(job.id)[-1].reason == "No longer needed"

    def test_cancel_confirmed_job(self, service, providers, post_job, bid_on):
        job = post_job()
        service.accept_bid(bid_on(job.id).id)
        assert service.cancel_job(job.id).status == "cancelled"

    def test_cannot_cancel_in_progress(self, service, in_progress_job):
        with pytest.raises(InvalidStateError, match="Cannot cancel"):
            service.cancel_job(in_progress_job.id)

    def test_only_customer_may_cancel(self, service, post_job):
        job = post_job()
        with pytest.raises(UnauthorizedError):
            service.cancel_job(job.id, actor_id="provider1")

    def test_full_history(self, service, in_progress_job):
        service.complete_job(in_progress_job.id)
        statuses = [t.to_status for t in service.get_job_history(in_progress_job.id)]
        assert statuses == ["posted", "confirmed", "in-progress", "completed"]


class TestReviews:
    """Tests for provider reviews."""

    def test_review_recomputes_rating(self, service, in_progress_job, post_job, bid_on):
        service.complete_job(in_progress_job.id)
        service.create_review(in_progress_job.id, "customer1", "provider1", 5, "Great")

        second = post_job()
        service.accept_bid(bid_on(second.id).id)
        service.start_job(second.id)
        service.complete_job(second.id)
        service.create_review(second.id, "customer1", "provider1", 4, "Good")

        provider = service.get_provider("provider1")
        assert provider.rating == 4.5
        assert provider.review_count == 2
        assert len(service.get_reviews_for_provider("provider1")) == 2

    def test_review_requires_completed_job(self, service, in_progress_job):
        with pytest.raises(InvalidStateError, match="completed"):
            service.create_review(in_progress_job.id, "customer1", "provider1", 5)

    def test_review_by_non_customer_rejected(self, service, in_progress_job):
        service.complete_job(in_progress_job.id)
        with pytest.raises(UnauthorizedError):
            service.create_review(in_progress_job.id, "provider5", "provider1", 5)

    def test_review_of_other_provider_rejected(self, service, in_progress_job):
        service.complete_job(in_progress_job.id)
        with pytest.raises(ValidationError, match="did not work"):
            service.create_review(in_progress_job.id, "customer1", "provider5", 5)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, service, in_progress_job, rating):
        service.complete_job(in_progress_job.id)
        with pytest.raises(ValidationError, match="between 1 and 5"):
            service.create_review(in_progress_job.id, "customer1", "provider1", rating)

    def test_review_unknown_provider(self, service, in_progress_job):
        with pytest.raises(ProviderNotFoundError):
            service.create_review(in_progress_job.id, "customer1", "ghost", 5)


class TestMessagesAndNotifications:
    """Tests for job chat and inbox notifications."""

    def test_send_message(self, service, notifications, post_job):
        job = post_job()
        message = service.send_message(job.id, "provider1", "customer1", "Is parking available?")

        assert service.get_messages_for_job(job.id) == [message]
        inbox = notifications.get_notifications("customer1")
        assert inbox[0].type == "message"
        assert inbox[0].data["message_id"] == message.id

    def test_empty_message_rejected(self, service, post_job):
        job = post_job()
        with pytest.raises(ValidationError):
            service.send_message(job.id, "provider1", "customer1", " ")

    def test_message_unknown_job(self, service):
        with pytest.raises(JobNotFoundError):
            service.send_message("missing", "a", "b", "hello")

    def test_lifecycle_notifications(self, service, notifications, in_progress_job):
        service.complete_job(in_progress_job.id)

        customer_types = [n.type for n in notifications.get_notifications("customer1")]
        provider_types = [n.type for n in notifications.get_notifications("provider1")]

        assert customer_types == ["job_completed", "job_started", "bid_received"]
        assert provider_types == ["bid_accepted"]

    def test_inbox_failure_does_not_block(self, service, providers, post_job, bid_on):
        class BrokenCenter:
            def notify(self, *args, **kwargs):
                raise RuntimeError("inbox down")

        service.notifications = BrokenCenter()
        job = post_job()
        bid = bid_on(job.id)

        assert bid.status == "pending"
        assert job.bids == [bid]

    def test_service_without_extras(self, storage):
        bare = MarketplaceService(storage=storage)
        job = bare.create_job(
            customer_id="c",
            title="Fix gate",
            description="Gate motor is stuck",
            category="Handyman",
            location="Greenside",
            budget="R300",
            estimated_duration=1,
        )
        assert bare.get_job(job.id) is job
        with pytest.raises(InvalidStateError, match="not enabled"):
            bare.confirm_safety(job.id)


class TestSafetyDelegation:
    """Tests for safety operations routed through the service."""

    def test_status_of_in_progress_job(self, service, clock, in_progress_job):
        clock.advance(hours=5)
        status = service.get_safety_status(in_progress_job.id)
        assert status.alert_level == "warning"

    def test_confirm_safety(self, service, sink, clock, in_progress_job):
        clock.advance(hours=7)
        service.monitor.sweep()

        status = service.confirm_safety(in_progress_job.id, user_id="customer1")

        assert status.alert_level == "safe"
        assert status.check_in_status == "confirmed"
        assert ("safety_confirmed", in_progress_job.id) in sink.events

    def test_status_reads_raise_no_alerts(self, service, sink, clock, in_progress_job):
        clock.advance(hours=8)

        for _ in range(10):
            assert service.get_safety_status(in_progress_job.id).alert_level == "critical"

        assert sink.events == []
        assert service.monitor.get_status(in_progress_job.id).emergency_alerts == 0

    def test_request_emergency_help(self, service, sink, in_progress_job):
        service.request_emergency_help(in_progress_job.id)
        assert sink.events[-1] == ("emergency_help_requested", in_progress_job.id)

    def test_safety_requires_in_progress(self, service, post_job):
        job = post_job()
        with pytest.raises(InvalidStateError, match="in progress"):
            service.get_safety_status(job.id)
        with pytest.raises(InvalidStateError):
            service.request_emergency_help(job.id)

    def test_completed_job_is_no_longer_evaluated(
        self, service, monitor, sink, clock, in_progress_job
    ):
        service.complete_job(in_progress_job.id)
        clock.advance(hours=10)

        monitor.sweep()

        assert sink.events == []


class TestEndToEndScenario:
    """Post, bid, accept, start and complete a job."""

    def test_scenario(self, service, monitor, clock, providers):
        job = service.create_job(
            customer_id="customer1",
            title="Deep Clean 3-Bedroom House",
            description="Kitchen, bathrooms and all living areas.",
            category="Cleaning",
            location="Sandton, Johannesburg",
            budget="R800 - R1200",
            estimated_duration=4,
        )
        assert job.status == "posted"
        assert job.bids == []

        bid = service.submit_bid(
            job_id=job.id,
            provider_id="provider1",
            amount="R950",
            message="Eco-friendly products, own equipment.",
            estimated_duration=4,
        )
        assert bid.status == "pending"
        assert job.bids == [bid]

        job, bid = service.accept_bid(bid.id)
        assert job.status == "confirmed"
        assert job.provider_id == "provider1"
        assert bid.status == "accepted"

        job = service.start_job(job.id)
        assert job.status == "in-progress"
        assert job.start_time is not None

        clock.advance(hours=4)
        job = service.complete_job(job.id)
        assert job.status == "completed"
        assert job.completed_time - job.start_time == timedelta(hours=4)
        assert monitor.evaluate(job.id) is None
