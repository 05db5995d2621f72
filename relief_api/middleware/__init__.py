# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains middleware components for authentication, validation,
error handling and CORS in the relief request API.
"""
