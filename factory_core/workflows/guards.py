# factory_core/workflows/guards.py

from django.core.exceptions import PermissionDenied
from django.db import models


class WorkflowWriteGuardMixin(models.Model):
    """
    Block save() calls that change engine-owned fields.

    WORKFLOW_FIELDS lists the fields only WorkflowEngine may write. The
    engine uses queryset .update() calls, which never reach save(), so any
    save() that changes one of them comes from somewhere else and is refused.

    Creating a row is always allowed. Repair scripts and fixtures may pass
    _workflow_bypass=True to save() or set instance._workflow_bypass.
    """

    WORKFLOW_FIELDS = ("status",)
    WORKFLOW_BYPASS_KWARG = "_workflow_bypass"

    class Meta:
        abstract = True

    def _workflow_attnames(self):
        return [self._meta.get_field(name).attname for name in self.WORKFLOW_FIELDS]

    def changed_workflow_fields(self):
        if self.pk is None:
            return []

        attnames = self._workflow_attnames()
        stored = self.__class__.objects.filter(pk=self.pk).values(*attnames).first()
        if stored is None:
            return []

        return [name for name in attnames if stored[name] != getattr(self, name)]

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.WORKFLOW_BYPASS_KWARG, False)
            or getattr(self, "_workflow_bypass", False)
        )

        if not bypass:
            changed = self.changed_workflow_fields()
            if changed:
                raise PermissionDenied(
                    f"Direct modification of {', '.join(changed)} is forbidden. "
                    "Use the workflow engine."
                )

        return super().save(*args, **kwargs)
