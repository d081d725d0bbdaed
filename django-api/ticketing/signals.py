"""Django signals.

``order_paid`` is sent after a paid settlement commits; ticket document
generation and buyer notifications hang off it, outside the settlement
transaction. The receivers below keep the catalog cache in step with the
Event table.
"""

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from ticketing.models import Event
from ticketing.stores.django_store import event_cache_key

# kwargs: order_id (str), ticket_ids (list[str])
order_paid = Signal()


@receiver([post_save, post_delete], sender=Event)
def invalidate_event_cache(sender, instance, **kwargs):
    """Invalidate the cached catalog entry when an event is saved or deleted."""
    cache.delete(event_cache_key(instance.pk))
