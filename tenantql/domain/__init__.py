"""
Domain package for tenantql.

Exports the request/response models of the generic select path. Keep this
package focused on data definitions and validation concerns.
"""

from tenantql.domain.models import OrderBy, PageResult, SelectRequest

__all__ = [
    "OrderBy",
    "PageResult",
    "SelectRequest",
]
