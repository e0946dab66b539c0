"""Shared cross-cutting helpers."""
