# clinicslots/modules/slots/engine.py
from __future__ import annotations

from dataclasses import dataclass

from clinicslots.modules.slots.blocking import BlockingService
from clinicslots.modules.slots.booking import SlotBookingService
from clinicslots.modules.slots.grid import SlotGridStore
from clinicslots.modules.slots.lookups import (
    AppointmentLookup,
    EventLookup,
    LeaveLookup,
    ProviderDirectory,
    SqlAppointmentLookup,
    SqlEventLookup,
    SqlLeaveLookup,
    SqlProviderDirectory,
    SqlWorkingHours,
    WorkingHoursLookup,
)
from clinicslots.modules.slots.resolver import AvailabilityResolver


@dataclass
class SchedulingEngine:
    """
    The scheduling core wired together. Built once at startup and handed to
    request handlers; holds no per-request state.
    """

    grid: SlotGridStore
    resolver: AvailabilityResolver
    booking: SlotBookingService
    blocking: BlockingService


def build_engine(
    hours: WorkingHoursLookup | None = None,
    leaves: LeaveLookup | None = None,
    events: EventLookup | None = None,
    appointments: AppointmentLookup | None = None,
    directory: ProviderDirectory | None = None,
) -> SchedulingEngine:
    hours = hours or SqlWorkingHours()
    grid = SlotGridStore(hours)
    return SchedulingEngine(
        grid=grid,
        resolver=AvailabilityResolver(
            grid,
            hours,
            leaves or SqlLeaveLookup(),
            events or SqlEventLookup(),
            appointments or SqlAppointmentLookup(),
        ),
        booking=SlotBookingService(grid),
        blocking=BlockingService(grid, hours, directory or SqlProviderDirectory()),
    )
