# SPDX-License-Identifier: MIT
"""Utilities used by generated build steps."""
