"""Manifest package for snapshotting the live installation."""

from .snapshot import build_manifest

__all__ = ["build_manifest"]
