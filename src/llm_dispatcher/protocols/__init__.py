# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocols for dispatcher integration."""

from .provider import ProviderProtocol

__all__ = ["ProviderProtocol"]
