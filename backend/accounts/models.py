# accounts/models.py
import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


def default_base_currency():
    return settings.LEDGER_DEFAULT_CURRENCY


class Organization(models.Model):
    """
    Tenant. Every ledger row belongs to exactly one organization and all
    base-currency amounts are expressed in its base_currency.
    """

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=64, unique=True)
    base_currency = models.CharField(
        max_length=3,
        default=default_base_currency,
        help_text="ISO 4217 code all ledger amounts are converted into",
    )
    is_active = models.BooleanField(default=True)
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="organizations",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Organization")
        verbose_name_plural = _("Organizations")
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if self.base_currency:
            self.base_currency = self.base_currency.upper()
        super().save(*args, **kwargs)
