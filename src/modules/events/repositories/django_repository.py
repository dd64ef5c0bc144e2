from __future__ import annotations

from modules.core.repositories.django_repository import DjangoRepository
from modules.events.models import Event
from modules.events.repositories.interfaces import IEventRepository


class EventDjangoRepository(DjangoRepository[Event], IEventRepository):
    model = Event
