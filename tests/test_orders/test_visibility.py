"""
Tests for role-based order visibility.
"""

from datetime import timedelta

import pytest

from tests.factories import FIXED_NOW, make_order
from tussles.services.orders.enums import OrderStatus
from tussles.services.orders.visibility import (
    completed_recently,
    list_visible_orders,
    sort_orders,
)


def completed(age: timedelta, **kwargs):
    finished = FIXED_NOW - age
    return make_order(
        status=OrderStatus.COMPLETED,
        created_at=finished - timedelta(days=1),
        completed_at=finished,
        approved_at=finished,
        **kwargs,
    )


class TestEmployeeWindow:
    """Completed orders drop out of employee listings after 24 hours."""

    def test_completed_just_inside_window_visible(self, employee_user):
        order = completed(timedelta(hours=23, minutes=59))
        assert list_visible_orders([order], employee_user, now=FIXED_NOW) == [order]

    def test_completed_exactly_at_window_visible(self, employee_user):
        order = completed(timedelta(hours=24))
        assert completed_recently(order, FIXED_NOW)

    def test_completed_past_window_hidden(self, employee_user):
        order = completed(timedelta(hours=24, seconds=1))
        assert list_visible_orders([order], employee_user, now=FIXED_NOW) == []

    def test_pending_orders_always_visible(self, employee_user):
        old_pending = make_order(created_at=FIXED_NOW - timedelta(days=90))
        assert list_visible_orders([old_pending], employee_user, now=FIXED_NOW) == [old_pending]

    def test_falls_back_to_updated_at(self, employee_user):
        order = completed(timedelta(hours=2))
        order.completed_at = None
        order.updated_at = FIXED_NOW - timedelta(hours=30)
        assert not completed_recently(order, FIXED_NOW)

    def test_naive_timestamps_treated_as_utc(self):
        order = completed(timedelta(hours=1))
        order.completed_at = order.completed_at.replace(tzinfo=None)
        assert completed_recently(order, FIXED_NOW)

    def test_employee_sees_other_users_orders(self, employee_user):
        order = make_order()
        assert order.created_by != employee_user.id
        assert list_visible_orders([order], employee_user, now=FIXED_NOW) == [order]


class TestOwnerVisibility:
    def test_owner_sees_old_completed_orders(self, owner_user):
        order = completed(timedelta(days=400))
        assert list_visible_orders([order], owner_user, now=FIXED_NOW) == [order]


class TestFilteringAndSorting:
    def test_status_filter(self, owner_user):
        pending = make_order()
        done = completed(timedelta(hours=1))

        result = list_visible_orders(
            [pending, done], owner_user, status_filter="completed", now=FIXED_NOW
        )

        assert result == [done]

    def test_newest_first(self, owner_user):
        older = make_order(created_at=FIXED_NOW - timedelta(days=3))
        newer = make_order(created_at=FIXED_NOW - timedelta(hours=1))

        result = list_visible_orders([older, newer], owner_user, now=FIXED_NOW)

        assert result == [newer, older]

    def test_missing_created_at_sorts_last(self):
        undated = make_order()
        undated.created_at = None
        dated = make_order()

        assert sort_orders([undated, dated]) == [dated, undated]

    def test_empty_input(self, employee_user):
        assert list_visible_orders([], employee_user, now=FIXED_NOW) == []
