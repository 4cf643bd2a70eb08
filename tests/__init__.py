"""
Tests for Snake Duel
====================

Run all tests:
    pytest tests/

Skip the longer training runs:
    pytest tests/ -m "not slow"
"""

# Suppress pygame's pkg_resources deprecation warning (pygame issue #4557)
import warnings
warnings.filterwarnings("ignore", category=UserWarning, module="pygame.pkgdata")
