"""Simulation primitives: grid, merging, hazards, time, phases, history, lock.

Kept free of FastAPI and Redis concerns so the engine runs headless in tests
and scripts.
"""
