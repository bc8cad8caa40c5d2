"""Service layer for business logic.

Services encapsulate all business rules, keeping callers (HTTP handlers,
CLI, jobs) thin. This separation provides:
- Clear business rules in one place
- Orchestration of multiple repositories inside one unit of work
- Reusable business logic across entry points

Layer hierarchy:
    Callers -> Services (Business Logic) -> Repositories (Database)

Services should:
- Contain all business rules and validation
- Orchestrate calls to repositories through a Transaction
- Return Success/Failure results for expected outcomes

Services should NOT:
- Directly execute SQL queries (use repositories)
- Know about transport details (status codes, response formatting)
"""

from services.rules_service import RuleError, RuleService, check_collision_time

__all__ = [
    "RuleError",
    "RuleService",
    "check_collision_time",
]
