"""Master data reconciliation for FleetRef.

Validates import batches against the store and commits them transactionally.
"""

from fleetref.reconciliation.committer import commit_import
from fleetref.reconciliation.validator import validate, validate_content

__all__ = ["commit_import", "validate", "validate_content"]
