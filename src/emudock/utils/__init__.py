"""Utility helpers for emudock."""
