import uuid

from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    """
    Base abstrata: PK UUID + carimbos de criação/atualização.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
