# SPDX-License-Identifier: MIT
"""Core types: toolchains, build types, flags, targets and errors."""
