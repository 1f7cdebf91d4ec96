# SPDX-License-Identifier: MIT
"""Configure phase: probe cache, tool lookup, compiler probes and settings."""
