"""Attendance accounting & synchronization engine.

This package is organized by feature modules (hours, attendance, validation, summary, sync)
with a thin Flask controller layer and service/repository layers underneath.
"""
