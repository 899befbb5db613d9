from django.contrib.auth.models import AbstractUser
from django.db import models

from .exceptions import InvalidStatusTransition


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class StatusTrackedModel(models.Model):
    """
    Abstract base for documents whose ``status`` follows a StatusMachine.

    The status loaded from the database is remembered, and ``save()`` refuses
    any change that the machine does not allow. New documents must start in
    the machine's initial status.

    A save that leaves the status alone never writes ``status_fields``: the
    copy in memory may predate a transition made elsewhere.
    """
    status_machine = None
    status_fields = ('status',)

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        if 'status' in instance.__dict__:
            instance._persisted_status = instance.status
        return instance

    def refresh_from_db(self, using=None, fields=None, **kwargs):
        super().refresh_from_db(using=using, fields=fields, **kwargs)
        if fields is None or 'status' in fields:
            self._persisted_status = self.status

    def get_status(self):
        """Current status as an enumeration member"""
        return self.status_machine.coerce(self.status)

    def check_status_change(self):
        machine = self.status_machine
        status = machine.coerce(self.status)
        if self._state.adding:
            if status != machine.initial:
                raise InvalidStatusTransition(None, machine.initial)
            return
        persisted = getattr(self, '_persisted_status', None)
        if persisted is not None and machine.coerce(persisted) != status:
            machine.ensure_transition(persisted, status)

    def _status_unchanged(self):
        persisted = getattr(self, '_persisted_status', None)
        return persisted is not None and self.status_machine.coerce(persisted) == self.status_machine.coerce(self.status)

    def save(self, *args, **kwargs):
        self.check_status_change()
        if not self._state.adding and not args and kwargs.get('update_fields') is None and self._status_unchanged():
            kwargs['update_fields'] = [
                field.name for field in self._meta.concrete_fields
                if not field.primary_key and field.name not in self.status_fields
            ]
        super().save(*args, **kwargs)
        self._persisted_status = self.status


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('stock_in', 'Stock Added'),
        ('stock_out', 'Stock Removed'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    company_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., purchase number, transfer number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
            models.Index(fields=['object_reference'], name='idx_audit_reference'),
        ]
