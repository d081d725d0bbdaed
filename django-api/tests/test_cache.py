"""Tests for cache behavior.

Run with: pytest tests/test_cache.py -v
"""

import uuid
from decimal import Decimal

import pytest
from django.core.cache import cache

from ticketing.domain import EventId
from ticketing.models import Event
from ticketing.stores.django_store import DjangoEventCatalog, event_cache_key


@pytest.mark.django_db
class TestEventCatalogCache:
    """Tests for catalog reads and cache invalidation on model changes."""

    def test_get_event_populates_cache(self, event):
        """Reading an event stores it under the events:{id} key."""
        catalog_event = DjangoEventCatalog().get_event(EventId(event.id))

        assert cache.get(event_cache_key(event.id)) == catalog_event
        assert catalog_event.pricing == {"vip": Decimal("500"), "oro": Decimal("300.00")}
        assert catalog_event.pricing_cents == {"oro": 30000}

    def test_cached_event_is_served_without_query(self, event, django_assert_num_queries):
        catalog = DjangoEventCatalog()
        catalog.get_event(EventId(event.id))

        with django_assert_num_queries(0):
            catalog.get_event(EventId(event.id))

    def test_event_save_invalidates_detail_cache(self, event):
        """Saving an event invalidates the events:{id} cache key."""
        DjangoEventCatalog().get_event(EventId(event.id))

        event.pricing = {"vip": 650}
        event.save()

        assert cache.get(event_cache_key(event.id)) is None
        refreshed = DjangoEventCatalog().get_event(EventId(event.id))
        assert refreshed.pricing == {"vip": Decimal("650")}

    def test_event_delete_invalidates_detail_cache(self, event):
        DjangoEventCatalog().get_event(EventId(event.id))
        event_id = event.id

        event.delete()

        assert cache.get(event_cache_key(event_id)) is None

    def test_missing_event_is_not_cached(self, db):
        missing = EventId(uuid.uuid4())

        assert DjangoEventCatalog().get_event(missing) is None
        assert cache.get(event_cache_key(missing)) is None

    def test_non_numeric_prices_are_skipped(self, db):
        row = Event.objects.create(
            title="Broken", pricing={"vip": "free", "oro": 100}, pricing_cents={"vip": "12", "oro": 10000}
        )

        catalog_event = DjangoEventCatalog().get_event(EventId(row.id))

        assert catalog_event.pricing == {"oro": Decimal("100")}
        assert catalog_event.pricing_cents == {"oro": 10000}
