"""Transform — apply decisions to SELECT statements and writes."""

from sqla_rls.transform._mutation import MutationGuard
from sqla_rls.transform._select import apply_conditions, authorize_select

__all__ = ["MutationGuard", "apply_conditions", "authorize_select"]
