"""Planner services: stores, generation, conflicts, rescheduling and plan lifecycle."""
