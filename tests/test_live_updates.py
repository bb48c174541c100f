"""
Tests for `services/live_updates.py`.

Covers contract rules:
- Subscribers receive events in subscription order, optionally filtered by name.
- A failing subscriber is logged and does not stop delivery to the others.
- Unknown event names are rejected.
- Unsubscribed handlers receive nothing further.
"""

from __future__ import annotations

import logging

import pytest

from services.live_updates import BILL_CREATED, INVENTORY_REFRESH, LiveUpdateRelay


def test_delivery_in_subscription_order_with_filters() -> None:
    relay = LiveUpdateRelay()
    seen = []
    relay.subscribe(lambda e: seen.append(("all", e.name)))
    relay.subscribe(lambda e: seen.append(("bills", e.name)), events=[BILL_CREATED])

    relay.publish(BILL_CREATED, bill=None)
    relay.publish(INVENTORY_REFRESH, items=[])

    assert seen == [("all", "bill:created"), ("bills", "bill:created"), ("all", "inventory:refresh")]


def test_failing_subscriber_is_logged_and_skipped(caplog) -> None:
    relay = LiveUpdateRelay()
    seen = []

    def broken(event) -> None:
        raise RuntimeError("socket closed")

    relay.subscribe(broken)
    relay.subscribe(lambda e: seen.append(e.name))

    with caplog.at_level(logging.WARNING, logger="services.live_updates"):
        event = relay.publish(BILL_CREATED, bill=None)

    assert seen == ["bill:created"]
    assert event.payload == {"bill": None}
    assert "Live update subscriber failed" in caplog.text


def test_unknown_event_names_rejected() -> None:
    relay = LiveUpdateRelay()

    with pytest.raises(ValueError):
        relay.publish("bill:archived")

    with pytest.raises(ValueError):
        relay.subscribe(lambda e: None, events=["stock:moved"])


def test_unsubscribe() -> None:
    relay = LiveUpdateRelay()
    seen = []
    subscription = relay.subscribe(seen.append)

    relay.unsubscribe(subscription)
    relay.publish(BILL_CREATED, bill=None)

    assert seen == []
    assert relay.subscriber_count == 0
