'''Universal-variable Kepler propagation package
Timeline class definition

The simulation history as a sequence of closed segments, each ended by an
event, followed by one open segment that carries the cache of in-progress
event searches.'''

import bisect
import logging
from dataclasses import dataclass

import pandas as pd

from .events import (
    EventKind, EventTag, first_event, search_for_soi_encounter, search_for_soi_escape,
)
from .utils import Timer

logger = logging.getLogger(__name__)


class EventSearchHorizons:
    """
    Cache of SearchResults keyed by ship and event tag.

    A missing entry means nothing has been searched yet, so the search starts
    at the segment start. found and never results are final. not_found(h)
    resumes from h.
    """

    def __init__(self, start_time):
        self._start_time = start_time
        self._results = {}        # ShipID -> {EventTag: SearchResult}

    @property
    def start_time(self):
        return self._start_time

    def get_result(self, ship_id, tag):
        """Cached SearchResult for (ship, tag), or None if never searched."""
        return self._results.get(ship_id, {}).get(tag)

    def search_until(self, ship_id, tag, end_time, search_fn):
        """
        Advance the search for (ship, tag) to end_time.

        Parameters
        ----------
        ship_id : ShipID
        tag : EventTag
        end_time : float
            Horizon the caller needs covered
        search_fn : callable
            search_fn(search_start, end_time) -> SearchResult
        """
        ship_results = self._results.setdefault(ship_id, {})
        cached = ship_results.get(tag)

        if cached is None:
            search_start = self._start_time
        elif cached.is_found or cached.is_never:
            return
        else:
            search_start = cached.horizon

        if search_start <= end_time:
            logger.debug("Searching %r for ship %d over [%.6f, %.6f]",
                         tag, ship_id.index, search_start, end_time)
            ship_results[tag] = search_fn(search_start, end_time)
        else:
            logger.debug("Cache covers %r for ship %d up to %.6f",
                         tag, ship_id.index, search_start)

    def get_next_event(self, ship_id=None):
        """
        Earliest found event, for one ship or across all ships.

        Ties go to the ship added first, then to the tag searched first.
        """
        if ship_id is not None:
            ship_maps = [self._results.get(ship_id, {})]
        else:
            ship_maps = self._results.values()
        return first_event(
            result.event
            for ship_results in ship_maps
            for result in ship_results.values()
            if result.is_found
        )

    def clear(self, ship_id):
        self._results.pop(ship_id, None)


@dataclass(frozen=True)
class ClosedSegment:
    """An immutable stretch of history, [start_time, ending_event.time)."""
    start_time: float
    orrery: object
    ending_event: object


class OpenSegment:
    """The last segment of the timeline, valid from start_time onwards."""

    def __init__(self, start_time, orrery):
        self.start_time = start_time
        self.orrery = orrery
        self.search_horizons = EventSearchHorizons(start_time)

    def search_for_events_until(self, end_time):
        """Bring every (ship, tag) search up to end_time."""
        if self.start_time >= end_time:
            return

        for ship in self.orrery.ships():
            ship_id = ship.id

            self.search_horizons.search_until(
                ship_id, EventTag.escape_soi(), end_time,
                lambda search_start, search_end: search_for_soi_escape(self.orrery, ship_id),
            )

            for body in self.orrery.bodies():
                self.search_horizons.search_until(
                    ship_id, EventTag.encounter_soi(body.id), end_time,
                    lambda search_start, search_end, body_id=body.id: search_for_soi_encounter(
                        self.orrery, ship_id, body_id, search_start, search_end,
                    ),
                )

    def split_at_next_event(self, end_time):
        """
        Close this segment at the earliest event found by end_time.

        The event itself may lie past end_time: a closed-form escape is found
        without a window, and it is committed all the same.

        Returns
        -------
        tuple of (ClosedSegment, OpenSegment) or None
            None if no search up to end_time has found an event
        """
        self.search_for_events_until(end_time)
        event = self.search_horizons.get_next_event()
        if event is None:
            return None

        # build the successor completely before anything is committed
        new_orrery = self.orrery.copy()
        new_orrery.process_event(event)
        successor = OpenSegment(event.point.time, new_orrery)

        closed = ClosedSegment(self.start_time, self.orrery, event)
        return closed, successor


class Timeline:
    """
    The state of the simulation as a sequence of Orrery snapshots separated
    by events.

    Segments are half-open: each covers its start time but not the time of
    the event that ends it. Start times strictly increase along the timeline,
    and the open segment starts no earlier than any closed one.

    Examples
    --------
    >>> orrery = apsis.read_file("ksp-bodies.txt")
    >>> orrery.add_ship([6e6, 0, 0], [0, 1000, 0], 0.0, BodyID(4))
    >>> timeline = Timeline(orrery, 0.0)
    >>> timeline.extend_end_time(86400.0 * 14)
    >>> list(timeline.events())
    """

    def __init__(self, orrery, start_time):
        self._closed_segments = []
        self._start_times = []          # start times of closed segments, for bisect
        self._open_segment = OpenSegment(start_time, orrery.copy())
        self._end_time = start_time

    # ========== PROPERTY ACCESS ==========
    @property
    def start_time(self):
        if self._closed_segments:
            return self._closed_segments[0].start_time
        return self._open_segment.start_time

    @property
    def end_time(self):
        """Furthest time the timeline has been extended to."""
        return self._end_time

    @property
    def open_segment(self):
        return self._open_segment

    def __len__(self):
        """Number of segments, including the open one."""
        return len(self._closed_segments) + 1

    # ========== LOOKUP ==========
    def get_orrery_at(self, time):
        """
        The Orrery snapshot in effect at the given time.

        Snapshots hold timed orbits, so positions at `time` follow by
        evaluating them; no event search happens here. The returned Orrery
        is a copy, so changing it leaves the timeline untouched.

        Returns
        -------
        Orrery or None
            None if time precedes the start of the timeline
        """
        if time >= self._open_segment.start_time:
            return self._open_segment.orrery.copy()

        # first closed segment starting strictly after `time`
        next_index = bisect.bisect_right(self._start_times, time)
        if next_index == 0:
            return None
        return self._closed_segments[next_index - 1].orrery.copy()

    def events(self):
        """Iterate over committed events in time order."""
        return (segment.ending_event for segment in self._closed_segments)

    # ========== EXTENSION ==========
    def extend_end_time(self, end_time):
        """
        Search for events up to end_time, closing segments as events are found.

        Each found event is committed, earliest first, until no search up to
        end_time finds another. An escape found in closed form can lie past
        end_time; it is committed too, and the open segment then starts
        after end_time.
        """
        if end_time < self._open_segment.start_time:
            return

        with Timer(f"Extending end time to {end_time:.6f}", logger):
            while True:
                split = self._open_segment.split_at_next_event(end_time)
                if split is None:
                    break
                closed, successor = split
                event = closed.ending_event
                logger.info(
                    "When extending end time to %.6f, found event at time %.6f for ship %d: %r",
                    end_time, event.point.time, event.ship_id.index, event.data,
                )
                self._closed_segments.append(closed)
                self._start_times.append(closed.start_time)
                self._open_segment = successor

        self._end_time = max(self._end_time, end_time)

    # ========== EXPORT ==========
    def events_dataframe(self):
        """
        Committed events as a DataFrame, one row per event in time order.

        Columns: time, ship, kind, old, new, anomaly, x, y, z.
        """
        rows = []
        for event in self.events():
            x, y, z = event.point.location
            rows.append({
                'time': event.point.time,
                'ship': event.ship_id.index,
                'kind': 'enter' if event.data.kind is EventKind.ENTERING_SOI else 'exit',
                'old': event.data.soi_change.old.index,
                'new': event.data.soi_change.new.index,
                'anomaly': event.point.anomaly,
                'x': x,
                'y': y,
                'z': z,
            })
        columns = ['time', 'ship', 'kind', 'old', 'new', 'anomaly', 'x', 'y', 'z']
        return pd.DataFrame(rows, columns=columns)

    def __repr__(self):
        return (
            f"Timeline(start={self.start_time}, end={self._end_time}, "
            f"segments={len(self)})"
        )
