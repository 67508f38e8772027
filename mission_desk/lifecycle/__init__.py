"""Cross-entity lifecycle orchestration for curses, requests and missions.

Every public operation runs one store transaction:
  1. Load the records involved and check every precondition (typed errors).
  2. Plan an ordered list of Create/Update/Delete effects.
  3. Apply the effects; any failure discards the whole working copy.
  4. After commit, notify the audit sink (its failures are logged, not raised).

Curse intake:    report_curse, update_curse, delete_curse
Request machine: pending → being_handled → handled, being_handled → pending
Mission machine: pending → in_progress → success | failure | canceled

Missions point at their owning request through Mission.request_id; the
request's curse is reached from there (see ownership.resolve_owner).
"""

from .effects import Create, Delete, Effect, Ref, Update, apply_effects  # noqa: F401
from .intake import delete_curse, report_curse, update_curse  # noqa: F401
from .missions import (  # noqa: F401
    cancel,
    complete,
    delete_mission,
    deploy,
    record_report,
    transition_mission,
)
from .ownership import MissingLink, OwnerChain, resolve_owner  # noqa: F401
from .requests import (  # noqa: F401
    assign_sorcerer,
    delete_request,
    mark_handled,
    modify_assignment,
    transition_request,
    withdraw,
)
