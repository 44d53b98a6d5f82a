"""Utility helpers for runners and post-processing."""

from .run_info import print_control_summary, print_run_header, print_set_summary

__all__ = [
    "print_run_header",
    "print_control_summary",
    "print_set_summary",
]
