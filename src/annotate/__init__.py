"""Annotate package for marking secrets as install-time hooks."""

from .patcher import AnnotationPlan, OutcomeKind, PatchOutcome, annotate_all, plan_annotation

__all__ = ["AnnotationPlan", "OutcomeKind", "PatchOutcome", "annotate_all", "plan_annotation"]
