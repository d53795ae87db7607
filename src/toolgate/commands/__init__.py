"""CLI command modules for toolgate.

    - catalog: List tools and show their schemas
    - policy: Dry-run the security guards against the active policy
"""

from __future__ import annotations

from . import catalog, policy

__all__ = ["catalog", "policy"]
