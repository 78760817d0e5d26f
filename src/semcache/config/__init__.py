# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Configuration module."""

from .settings import CacheSettings, build_settings, clear_settings_cache, get_settings

__all__ = ["CacheSettings", "build_settings", "clear_settings_cache", "get_settings"]
