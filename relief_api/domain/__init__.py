# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the relief coordination platform.

This package contains pure business logic functions with no side effects:
the request lifecycle engine, the access guard, and request helpers.
"""
