# SPDX-License-Identifier: Apache-2.0

"""
Relief request API - emergency assistance request lifecycle service.
"""

__version__ = "1.0.0"
