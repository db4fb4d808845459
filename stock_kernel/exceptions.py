"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (CSV importers, purchasing screens, batch jobs) must be able to react
to a rejected entry or an illegal suggestion transition without parsing
message strings.  Every exception here therefore:
  1. Has its own class (catch by type, not message)
  2. Has a ``code`` class attribute (machine-readable, API-safe)
  3. Carries structured data as attributes (not just a message string)

Example:
    try:
        store.append(receipt, actor_id=actor)
    except NegativeQuantityError as e:
        reject_row(code=e.code, item=e.item_code, quantity=e.quantity)

Data problems discovered while *deriving* views (negative stock, future-dated
entries, missing cost basis) are NOT exceptions: they are reported as
``DataIntegrityFinding`` values next to the computed result.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ValidationError
    |   +-- NegativeQuantityError
    |   +-- MissingItemCodeError
    |   +-- FutureDatedEntryError
    |   +-- InvalidCostError
    |   +-- DuplicateOpeningStockError
    |
    +-- LedgerError
    |   +-- EntryNotFoundError
    |   +-- EntryAlreadyReversedError
    |   +-- CannotReverseReversalError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ComputationError
    |   +-- InvalidReorderRuleError
    |   +-- UnknownCostMethodError
    |
    +-- ReorderError
    |   +-- ReorderRuleNotFoundError
    |   +-- SuggestionNotFoundError
    |   +-- InvalidSuggestionTransitionError
    |
    +-- BatchError
        +-- BatchJobNotFoundError
        +-- BatchAlreadyRunningError
        +-- BatchIdempotencyError
        +-- TaskNotRegisteredError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|-------------------------------------
Validation   | NEGATIVE_QUANTITY             | Quantity < 0 (or <= 0 for GRN/issue)
             | MISSING_ITEM_CODE             | Blank or missing item code
             | FUTURE_DATED_ENTRY            | Entry date after today
             | INVALID_COST                  | Negative cost or amount/cost mismatch
             | DUPLICATE_OPENING_STOCK       | Second live opening for item/date
-------------|-------------------------------|-------------------------------------
Ledger       | ENTRY_NOT_FOUND               | No entry with that id
             | ENTRY_ALREADY_REVERSED        | Entry already has a reversal
             | CANNOT_REVERSE_REVERSAL       | Target is itself a reversal
-------------|-------------------------------|-------------------------------------
Immutability | IMMUTABILITY_VIOLATION        | UPDATE/DELETE of a ledger row
-------------|-------------------------------|-------------------------------------
Computation  | INVALID_REORDER_RULE          | Negative level/qty or lead time
             | UNKNOWN_COST_METHOD           | No valuation strategy registered
-------------|-------------------------------|-------------------------------------
Reorder      | REORDER_RULE_NOT_FOUND        | No rule with that id
             | SUGGESTION_NOT_FOUND          | No suggestion with that id
             | INVALID_SUGGESTION_TRANSITION | e.g. approve an ORDERED suggestion
-------------|-------------------------------|-------------------------------------
Batch        | BATCH_JOB_NOT_FOUND           | No job with that id
             | BATCH_ALREADY_RUNNING         | Job not in PENDING state
             | BATCH_IDEMPOTENCY_CONFLICT    | Key reused for a different job
             | TASK_NOT_REGISTERED           | Unknown task type
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation exceptions


class ValidationError(StockKernelError):
    """Base exception for entries rejected before reaching the log."""

    code: str = "VALIDATION_ERROR"


class NegativeQuantityError(ValidationError):
    """Quantity is negative, or not positive where it must be."""

    code: str = "NEGATIVE_QUANTITY"

    def __init__(self, item_code: str, quantity, entry_kind: str):
        self.item_code = item_code
        self.quantity = quantity
        self.entry_kind = entry_kind
        super().__init__(
            f"Invalid {entry_kind} quantity {quantity} for item {item_code}"
        )


class MissingItemCodeError(ValidationError):
    """Entry has no item code."""

    code: str = "MISSING_ITEM_CODE"

    def __init__(self, entry_kind: str):
        self.entry_kind = entry_kind
        super().__init__(f"{entry_kind} entry is missing an item code")


class FutureDatedEntryError(ValidationError):
    """Entry is dated after today."""

    code: str = "FUTURE_DATED_ENTRY"

    def __init__(self, item_code: str, entry_date, today):
        self.item_code = item_code
        self.entry_date = entry_date
        self.today = today
        super().__init__(
            f"Entry for {item_code} dated {entry_date} is after today ({today})"
        )


class InvalidCostError(ValidationError):
    """Unit cost or amount is negative, or the two disagree."""

    code: str = "INVALID_COST"

    def __init__(self, item_code: str, reason: str):
        self.item_code = item_code
        self.reason = reason
        super().__init__(f"Invalid cost for {item_code}: {reason}")


class DuplicateOpeningStockError(ValidationError):
    """A live opening-stock entry already exists for this item and date."""

    code: str = "DUPLICATE_OPENING_STOCK"

    def __init__(self, item_code: str, entry_date, existing_entry_id: str):
        self.item_code = item_code
        self.entry_date = entry_date
        self.existing_entry_id = existing_entry_id
        super().__init__(
            f"Opening stock for {item_code} on {entry_date} already recorded "
            f"as {existing_entry_id}"
        )


# Ledger exceptions


class LedgerError(StockKernelError):
    """Base exception for transaction log errors."""

    code: str = "LEDGER_ERROR"


class EntryNotFoundError(LedgerError):
    """No entry exists with the given id."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Ledger entry not found: {entry_id}")


class EntryAlreadyReversedError(LedgerError):
    """Entry has already been reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, entry_id: str, reversal_id: str | None = None):
        self.entry_id = entry_id
        self.reversal_id = reversal_id
        super().__init__(f"Entry {entry_id} has already been reversed")


class CannotReverseReversalError(LedgerError):
    """A reversal row cannot itself be reversed."""

    code: str = "CANNOT_REVERSE_REVERSAL"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} is a reversal and cannot be reversed")


# Immutability exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a ledger row."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Computation exceptions


class ComputationError(StockKernelError):
    """Base exception for malformed engine inputs."""

    code: str = "COMPUTATION_ERROR"


class InvalidReorderRuleError(ComputationError):
    """Reorder rule has out-of-range parameters."""

    code: str = "INVALID_REORDER_RULE"

    def __init__(self, item_code: str, field: str, value, reason: str):
        self.item_code = item_code
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            f"Invalid reorder rule for {item_code}: {field}={value} ({reason})"
        )


class UnknownCostMethodError(ComputationError):
    """No valuation strategy is registered for the method."""

    code: str = "UNKNOWN_COST_METHOD"

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"No valuation strategy registered for method: {method}")


# Reorder exceptions


class ReorderError(StockKernelError):
    """Base exception for reorder rule and suggestion errors."""

    code: str = "REORDER_ERROR"


class ReorderRuleNotFoundError(ReorderError):
    code: str = "REORDER_RULE_NOT_FOUND"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Reorder rule not found: {rule_id}")


class SuggestionNotFoundError(ReorderError):
    code: str = "SUGGESTION_NOT_FOUND"

    def __init__(self, suggestion_id: str):
        self.suggestion_id = suggestion_id
        super().__init__(f"Reorder suggestion not found: {suggestion_id}")


class InvalidSuggestionTransitionError(ReorderError):
    """Suggestion status change not allowed by the lifecycle."""

    code: str = "INVALID_SUGGESTION_TRANSITION"

    def __init__(self, suggestion_id: str, from_status: str, action: str):
        self.suggestion_id = suggestion_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} suggestion {suggestion_id} in status {from_status}"
        )


# Batch exceptions


class BatchError(StockKernelError):
    """Base exception for batch processing errors."""

    code: str = "BATCH_ERROR"


class BatchJobNotFoundError(BatchError):
    code: str = "BATCH_JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Batch job not found: {job_id}")


class BatchAlreadyRunningError(BatchError):
    """Job is running or already finished."""

    code: str = "BATCH_ALREADY_RUNNING"

    def __init__(self, job_name: str, job_id: str, status: str | None = None):
        self.job_name = job_name
        self.job_id = job_id
        self.status = status
        super().__init__(
            f"Batch job {job_name} ({job_id}) cannot start from status {status}"
        )


class BatchIdempotencyError(BatchError):
    code: str = "BATCH_IDEMPOTENCY_CONFLICT"

    def __init__(self, idempotency_key: str, existing_job_id: str):
        self.idempotency_key = idempotency_key
        self.existing_job_id = existing_job_id
        super().__init__(
            f"Idempotency key {idempotency_key} already used by job {existing_job_id}"
        )


class TaskNotRegisteredError(BatchError):
    code: str = "TASK_NOT_REGISTERED"

    def __init__(self, task_type: str, available: list[str] | None = None):
        self.task_type = task_type
        self.available = list(available or [])
        super().__init__(
            f"No batch task registered for type: {task_type} "
            f"(available: {', '.join(self.available) or 'none'})"
        )
