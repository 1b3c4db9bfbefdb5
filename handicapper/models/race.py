"""Input records: past performances, horses and the race header.

These are produced by the ingestion layer and treated as read-only for the
duration of a scoring pass. ``from_dict`` adapts the plain JSON shape the
ingestion layer emits.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from handicapper.errors import InvalidRecord
from handicapper.parsing import parse_race_time, parse_stats

_PROGRAM_RE = re.compile(r"^(\d+)([A-Z]?)$")

EARLY_STYLES = frozenset({"E"})
PRESSER_STYLES = frozenset({"E/P", "P"})
CLOSER_STYLES = frozenset({"S", "C"})


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_style(style: Optional[str]) -> str:
    """Canonical running style code ("E", "E/P", "P", "S", "C" or "")."""
    if not style:
        return ""
    return style.strip().upper().replace("-", "/")


def style_category(style: Optional[str]) -> str:
    """Group a running style into early / presser / closer / unknown."""
    code = normalize_style(style)
    if code in EARLY_STYLES:
        return "early"
    if code in PRESSER_STYLES:
        return "presser"
    if code in CLOSER_STYLES:
        return "closer"
    return "unknown"


def program_sort_key(program_number: str) -> tuple:
    """Sort key giving 1, 1A, 2, ... 10 ordering for program numbers."""
    m = _PROGRAM_RE.match(program_number.strip().upper())
    if m:
        return (0, int(m.group(1)), m.group(2))
    return (1, 0, program_number)


@dataclass(frozen=True)
class StatsRecord:
    """Racing stats (starts: wins-seconds-thirds)."""

    starts: int = 0
    wins: int = 0
    seconds: int = 0
    thirds: int = 0

    @property
    def win_rate(self) -> float:
        return self.wins / self.starts if self.starts > 0 else 0.0

    @property
    def place_rate(self) -> float:
        return (self.wins + self.seconds + self.thirds) / self.starts if self.starts > 0 else 0.0

    @classmethod
    def from_value(cls, value: Any) -> Optional["StatsRecord"]:
        if isinstance(value, StatsRecord):
            return value
        parsed = parse_stats(value)
        if parsed is None:
            return None
        return cls(*parsed)


@dataclass(frozen=True)
class PastPerformance:
    """One historical race line for a horse, most recent first in a list."""

    finish_position: Optional[int] = None
    field_size: Optional[int] = None
    lengths_behind: Optional[float] = None
    speed_figure: Optional[int] = None
    distance_furlongs: Optional[float] = None
    surface: Optional[str] = None
    purse: Optional[float] = None
    days_since_previous: Optional[int] = None
    quarter_time: Optional[float] = None
    half_mile_time: Optional[float] = None
    six_furlong_time: Optional[float] = None
    mile_time: Optional[float] = None
    final_time: Optional[float] = None
    trip_comment: str = ""
    comment: str = ""

    @property
    def in_the_money(self) -> bool:
        return self.finish_position is not None and 1 <= self.finish_position <= 3

    @property
    def comment_text(self) -> str:
        return " ".join(c for c in (self.trip_comment, self.comment) if c)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PastPerformance":
        return cls(
            finish_position=_opt_int(data.get("finish_position")),
            field_size=_opt_int(data.get("field_size")),
            lengths_behind=_opt_float(data.get("lengths_behind")),
            speed_figure=_opt_int(data.get("speed_figure")),
            distance_furlongs=_opt_float(data.get("distance_furlongs")),
            surface=(data.get("surface") or None),
            purse=_opt_float(data.get("purse")),
            days_since_previous=_opt_int(data.get("days_since_previous")),
            quarter_time=parse_race_time(data.get("quarter_time")),
            half_mile_time=parse_race_time(data.get("half_mile_time")),
            six_furlong_time=parse_race_time(data.get("six_furlong_time")),
            mile_time=parse_race_time(data.get("mile_time")),
            final_time=parse_race_time(data.get("final_time")),
            trip_comment=str(data.get("trip_comment") or ""),
            comment=str(data.get("comment") or ""),
        )


@dataclass(frozen=True)
class EquipmentFlags:
    first_time_blinkers: bool = False
    blinkers_off: bool = False
    first_time_lasix: bool = False
    lasix_off: bool = False
    first_time_equipment: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EquipmentFlags":
        if not data:
            return cls()
        return cls(
            first_time_blinkers=bool(data.get("first_time_blinkers")),
            blinkers_off=bool(data.get("blinkers_off")),
            first_time_lasix=bool(data.get("first_time_lasix")),
            lasix_off=bool(data.get("lasix_off")),
            first_time_equipment=tuple(data.get("first_time_equipment") or ()),
        )


@dataclass(frozen=True)
class HorseRecord:
    """A horse entered in today's race."""

    program_number: str
    name: str
    running_style: str = ""
    post_position: Optional[int] = None
    layoff_days: Optional[int] = None
    past_performances: tuple[PastPerformance, ...] = ()
    trainer_name: str = ""
    jockey_name: str = ""
    trainer_stats: Optional[StatsRecord] = None
    jockey_stats: Optional[StatsRecord] = None
    partnership_stats: Optional[StatsRecord] = None
    equipment: EquipmentFlags = field(default_factory=EquipmentFlags)
    morning_line_odds: Optional[str] = None
    scratched: bool = False

    @property
    def last_finish(self) -> Optional[int]:
        if not self.past_performances:
            return None
        return self.past_performances[0].finish_position

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HorseRecord":
        """Build a record from an ingestion mapping.

        Raises InvalidRecord when the past performances are not a list.
        Missing identity fields are left empty and caught by
        :func:`validate_record`.
        """
        pps = data.get("past_performances") or []
        if not isinstance(pps, (list, tuple)):
            raise InvalidRecord(
                f"past_performances must be a list, got {type(pps).__name__}"
            )
        program = data.get("program_number")
        return cls(
            program_number="" if program is None else str(program).strip(),
            name=str(data.get("name") or "").strip(),
            running_style=normalize_style(data.get("running_style")),
            post_position=_opt_int(data.get("post_position")),
            layoff_days=_opt_int(data.get("layoff_days")),
            past_performances=tuple(
                pp if isinstance(pp, PastPerformance) else PastPerformance.from_dict(pp)
                for pp in pps
            ),
            trainer_name=str(data.get("trainer_name") or ""),
            jockey_name=str(data.get("jockey_name") or ""),
            trainer_stats=StatsRecord.from_value(data.get("trainer_stats")),
            jockey_stats=StatsRecord.from_value(data.get("jockey_stats")),
            partnership_stats=StatsRecord.from_value(data.get("partnership_stats")),
            equipment=EquipmentFlags.from_dict(data.get("equipment")),
            morning_line_odds=(
                None if data.get("morning_line_odds") is None
                else str(data.get("morning_line_odds"))
            ),
            scratched=bool(data.get("scratched", False)),
        )


@dataclass(frozen=True)
class RaceHeader:
    """Today's race conditions."""

    track_code: str = ""
    race_number: int = 0
    surface: str = "dirt"
    distance_furlongs: float = 6.0
    classification: str = ""
    purse: Optional[float] = None
    field_size: Optional[int] = None
    conditions: str = ""
    speed_par: Optional[int] = None
    favored_posts: tuple[int, ...] = ()

    @property
    def is_sprint(self) -> bool:
        return self.distance_furlongs <= 7.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RaceHeader":
        return cls(
            track_code=str(data.get("track_code") or ""),
            race_number=_opt_int(data.get("race_number")) or 0,
            surface=str(data.get("surface") or "dirt").lower(),
            distance_furlongs=_opt_float(data.get("distance_furlongs")) or 6.0,
            classification=str(data.get("classification") or ""),
            purse=_opt_float(data.get("purse")),
            field_size=_opt_int(data.get("field_size")),
            conditions=str(data.get("conditions") or ""),
            speed_par=_opt_int(data.get("speed_par")),
            favored_posts=tuple(int(p) for p in data.get("favored_posts") or ()),
        )


def validate_record(horse: Any, source_index: Optional[int] = None) -> HorseRecord:
    """Check a horse has the fields needed even for neutral defaults."""
    if not isinstance(horse, HorseRecord):
        raise InvalidRecord(
            f"entry {source_index} is not a horse record", source_index
        )
    if not isinstance(horse.program_number, str):
        raise InvalidRecord(
            f"entry {source_index} program number must be a string, "
            f"got {type(horse.program_number).__name__}",
            source_index,
        )
    if not horse.program_number.strip():
        raise InvalidRecord(
            f"entry {source_index} has no program number", source_index
        )
    if not isinstance(horse.name, str) or not horse.name.strip():
        raise InvalidRecord(
            f"#{horse.program_number} has no name", source_index
        )
    if horse.post_position is not None:
        if not isinstance(horse.post_position, int) or isinstance(horse.post_position, bool):
            raise InvalidRecord(
                f"#{horse.program_number} {horse.name} post must be an integer, "
                f"got {type(horse.post_position).__name__}",
                source_index,
            )
        if horse.post_position < 1:
            raise InvalidRecord(
                f"#{horse.program_number} {horse.name} has invalid post {horse.post_position}",
                source_index,
            )
    if horse.layoff_days is not None and not isinstance(horse.layoff_days, int):
        raise InvalidRecord(
            f"#{horse.program_number} {horse.name} layoff must be an integer, "
            f"got {type(horse.layoff_days).__name__}",
            source_index,
        )
    if not isinstance(horse.past_performances, (list, tuple)):
        raise InvalidRecord(
            f"#{horse.program_number} {horse.name} past performances must be a list, "
            f"got {type(horse.past_performances).__name__}",
            source_index,
        )
    for n, pp in enumerate(horse.past_performances):
        if not isinstance(pp, PastPerformance):
            raise InvalidRecord(
                f"#{horse.program_number} {horse.name} past performance {n} "
                f"is a {type(pp).__name__}, not a past performance",
                source_index,
            )
    return horse
