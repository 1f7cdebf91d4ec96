# SPDX-License-Identifier: MIT
"""Target level helpers: configuration, coverage, formatting and analysis."""
