# ============================================================================
# VERSION - CONTAINER WAIT
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# ============================================================================
"""
Version information for container-wait.

This is the single source of truth for the package version.
Updated manually for each release.
"""
# Version format: major.minor.patch
# Criteria for 0.1 - every strategy probes a live target
__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-18"

EPOCH = 1
CODENAME = "Readiness Probing"
