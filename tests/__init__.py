"""Test package for the micro-lesson engine.

Core tests drive lessons with a fake clock and a manually pumped
scheduler. The UI smoke tests run headlessly using pygame's dummy video
driver. To run these tests, execute ``pytest`` from the project root.
"""
