from django.db import models  # type: ignore


class AuditLog(models.Model):
    """Journal des opérations sur les réservations"""

    action = models.CharField(max_length=50, db_index=True)
    details = models.TextField()
    object_type = models.CharField(max_length=50, blank=True)  # 'booking', 'boat', ...
    object_id = models.CharField(max_length=64, blank=True)
    extra = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'timestamp'], name='audit_action_ts_idx'),
            models.Index(fields=['object_type', 'object_id'], name='audit_object_idx'),
        ]
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.action} - {self.timestamp}"
