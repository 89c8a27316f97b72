"""Anchor reconciliation for markco."""

from markco.anchors.reconciler import AnchorReconciler, AnchorUpdate

__all__ = ["AnchorReconciler", "AnchorUpdate"]
