# materials_core/workflows/guards.py

from django.core.exceptions import PermissionDenied
from django.db import models


class WorkflowWriteGuardMixin(models.Model):
    """
    Prevent direct modification of workflow-controlled fields outside the workflow engine.

    Models inheriting this mixin declare their own WORKFLOW_FIELDS and must
    transition via the workflow executor. Direct .save() changes to any of
    them are blocked.

    Escape hatch:
      - pass _workflow_bypass=True to save(), OR
      - set instance._workflow_bypass = True
    Use sparingly (tests, data fixes, admin repair scripts).
    """

    WORKFLOW_FIELDS = ()
    WORKFLOW_BYPASS_KWARG = "_workflow_bypass"

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.WORKFLOW_BYPASS_KWARG, False)
            or getattr(self, "_workflow_bypass", False)
        )

        if not bypass and not self._state.adding and self.WORKFLOW_FIELDS:
            old = (
                self.__class__.objects.filter(pk=self.pk)
                .values(*self.WORKFLOW_FIELDS)
                .first()
            )
            if old is not None:
                changed = [
                    f for f in self.WORKFLOW_FIELDS
                    if old[f] != getattr(self, f, None)
                ]
                if changed:
                    raise PermissionDenied(
                        f"Direct modification of {', '.join(repr(f) for f in changed)} "
                        "is forbidden. Use workflow transition APIs."
                    )

        return super().save(*args, **kwargs)


class AppendOnlyMixin(models.Model):
    """
    Evidence records are facts: written once, never updated or deleted.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionDenied(
                f"{self.__class__.__name__} records are immutable once created."
            )
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied(
            f"{self.__class__.__name__} records cannot be deleted."
        )
