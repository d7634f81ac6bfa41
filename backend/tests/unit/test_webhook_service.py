"""
Tests for webhook subscriptions and after-commit delivery
"""
import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.services import webhook_service
from app.services.event_service import CUSTOMER_ORDER, record_order_event


class TestSubscriptions:

    def test_subscribe_normalizes_event_type(self, db_session):
        subscription = webhook_service.subscribe(db_session, " customer_order.completed ", "https://hooks.example/a")
        assert subscription.event_type == "CUSTOMER_ORDER.COMPLETED"

    def test_blank_event_type_matches_any(self, db_session):
        subscription = webhook_service.subscribe(db_session, None, "https://hooks.example/a")
        assert subscription.event_type == "ANY"
        assert subscription.matches("WORKSTATION_ORDER.IN_PROGRESS")

    def test_rejects_non_http_target(self, db_session):
        with pytest.raises(ValidationError):
            webhook_service.subscribe(db_session, "ANY", "ftp://hooks.example/a")

    def test_duplicate_subscription_conflicts(self, db_session):
        webhook_service.subscribe(db_session, "ANY", "https://hooks.example/a")
        with pytest.raises(ConflictError):
            webhook_service.subscribe(db_session, "any", "https://hooks.example/a")

    def test_unsubscribe_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            webhook_service.unsubscribe(db_session, 999)


class TestDelivery:

    def test_delivered_only_after_commit(self, db_session):
        webhook_service.subscribe(db_session, "CUSTOMER_ORDER.COMPLETED", "https://hooks.example/a", secret="s3")
        db_session.commit()

        with patch("app.services.webhook_service.requests.post") as post:
            record_order_event(db_session, CUSTOMER_ORDER, 1, "COMPLETED", "done")
            db_session.flush()
            post.assert_not_called()

            db_session.commit()
            assert webhook_service.wait_for_deliveries()

        post.assert_called_once()
        args, kwargs = post.call_args
        assert args[0] == "https://hooks.example/a"
        assert kwargs["json"]["orderType"] == CUSTOMER_ORDER
        assert kwargs["json"]["eventType"] == "COMPLETED"
        assert kwargs["headers"]["X-Webhook-Secret"] == "s3"

    def test_rollback_discards_pending(self, db_session):
        webhook_service.subscribe(db_session, "ANY", "https://hooks.example/a")
        db_session.commit()

        with patch("app.services.webhook_service.requests.post") as post:
            record_order_event(db_session, CUSTOMER_ORDER, 1, "CONFIRMED")
            db_session.rollback()
            db_session.commit()
            assert webhook_service.wait_for_deliveries()

        post.assert_not_called()

    def test_non_matching_subscription_ignored(self, db_session):
        webhook_service.subscribe(db_session, "CUSTOMER_ORDER.CANCELLED", "https://hooks.example/a")
        db_session.commit()

        with patch("app.services.webhook_service.requests.post") as post:
            record_order_event(db_session, CUSTOMER_ORDER, 1, "COMPLETED")
            db_session.commit()
            assert webhook_service.wait_for_deliveries()

        post.assert_not_called()

    def test_commit_does_not_wait_for_slow_subscriber(self, db_session):
        webhook_service.subscribe(db_session, "ANY", "https://hooks.example/slow")
        db_session.commit()
        release = threading.Event()

        def slow_post(*args, **kwargs):
            release.wait(5)
            return MagicMock()

        with patch("app.services.webhook_service.requests.post", side_effect=slow_post) as post:
            record_order_event(db_session, CUSTOMER_ORDER, 1, "CONFIRMED")
            db_session.commit()

            assert webhook_service.wait_for_deliveries(timeout=0.1) is False
            release.set()
            assert webhook_service.wait_for_deliveries()

        post.assert_called_once()

    def test_delivery_failure_is_logged_not_raised(self):
        with patch("app.services.webhook_service.requests.post", side_effect=requests.ConnectionError("down")):
            assert webhook_service.deliver("https://hooks.example/a", None, "X.Y", {}) is False
