"""General calendar events.

Only the fields a merch pickup event needs when it links to one are
modelled here; attendance and points live outside this project.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel


class Event(BaseModel):
    title: models.CharField = models.CharField(max_length=255)
    description: models.TextField = models.TextField(blank=True, default="")
    location: models.CharField = models.CharField(max_length=255, blank=True, default="")
    start: models.DateTimeField = models.DateTimeField()
    end: models.DateTimeField = models.DateTimeField()

    class Meta:
        db_table = "events"
        ordering = ["start"]

    def __str__(self) -> str:
        return self.title
