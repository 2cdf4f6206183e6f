# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""portrelay - Outbound-only SSH port forwarding brokered by a relay server."""

__version__ = "0.1.0"
