"""
models.py — Python dataclasses for the garden succession planner.

Maps to the SQLite tables created in database.py. Plans are a tagged
variant: a plan is either a SowingPlan (type='sowing') or a TaskPlan
(type='task'); consumers dispatch on the class, never on which keys exist.
"""

from dataclasses import dataclass, field, asdict, fields
from typing import Optional, Union, Set


# Growth stages (derived, never stored)
SOWING = 'sowing'
GROWING = 'growing'
HARVEST_READY = 'harvest-ready'
HARVESTED = 'harvested'
FAILED = 'failed'

ALL_STAGES = (SOWING, GROWING, HARVEST_READY, HARVESTED, FAILED)
DEFAULT_TRACKED_STAGES = frozenset({SOWING, GROWING, HARVEST_READY})

# Plan statuses (None means active)
STATUS_DAMAGED = 'damaged'
STATUS_FAILED = 'failed'
STATUS_HARVESTED = 'harvested'

PLAN_STATUSES = (None, STATUS_DAMAGED, STATUS_FAILED, STATUS_HARVESTED)

# Damage / loss causes
REASON_CODES = ('frost', 'pests', 'disease', 'weather', 'other')

FROST_SENSITIVITY_LEVELS = ('none', 'low', 'moderate', 'high')

DEFAULT_DAMAGE_MULTIPLIER = 1.25

PLAN_TYPE_SOWING = 'sowing'
PLAN_TYPE_TASK = 'task'

# Harvest date provenance for an expanded generation
HARVEST_ACTUAL = 'actual'
HARVEST_ESTIMATED = 'estimated'
HARVEST_PROJECTED = 'projected'


@dataclass(frozen=True)
class CropVariety:
    """Timing parameters of one cultivar. Read-only reference data."""
    crop_id: str = ""
    variety_id: str = ""
    name: str = ""
    days_to_germination: int = 0
    days_to_transplant: int = 0
    days_to_harvest: int = 0
    start_month: int = 1
    end_month: int = 12
    frost_sensitivity: str = 'none'
    overwinter: bool = False
    group_id: str = ""
    spacing_cm: Optional[int] = None
    row_spacing_cm: Optional[int] = None


@dataclass
class SowingPlan:
    """A scheduled sowing with its succession and status fields."""
    id: str = ""
    crop_id: str = ""
    variety_id: str = ""
    sowing_date: str = ""
    succession_interval: int = 14
    succession_count: int = 1
    skip_sowing_date: bool = False
    status: Optional[str] = None
    harvest_date: Optional[str] = None
    estimated_harvest_date: Optional[str] = None
    damage_multiplier: Optional[float] = None
    reason_code: Optional[str] = None
    notes: Optional[str] = None
    last_modified: Optional[str] = None
    type: str = field(default=PLAN_TYPE_SOWING, init=False)

    @property
    def anchor_date(self) -> str:
        return self.sowing_date

    @property
    def is_terminal(self) -> bool:
        """Failed or harvested plans accept no further transitions."""
        return bool(self.harvest_date) or self.status in (STATUS_FAILED, STATUS_HARVESTED)


@dataclass
class TaskPlan:
    """A recurring garden task (no harvest concept)."""
    id: str = ""
    task_id: str = ""
    task_name: str = ""
    task_description: str = ""
    start_date: str = ""
    succession_interval: int = 30
    succession_count: int = 1
    notes: Optional[str] = None
    last_modified: Optional[str] = None
    type: str = field(default=PLAN_TYPE_TASK, init=False)

    @property
    def anchor_date(self) -> str:
        return self.start_date


Plan = Union[SowingPlan, TaskPlan]


@dataclass(frozen=True)
class GenerationEvents:
    """Dates of one succession generation of a sowing plan."""
    index: int
    sowing_date: str
    transplant_date: Optional[str]
    harvest_date: str
    harvest_date_kind: str
    show_sowing: bool = True


@dataclass(frozen=True)
class TaskOccurrence:
    """One repetition of a task plan."""
    index: int
    date: str


@dataclass(frozen=True)
class CalendarEvent:
    """A single dated marker for the calendar view."""
    plan_id: str
    date: str
    kind: str
    generation: int = 0
    label: str = ""


@dataclass
class ProgressFilter:
    """Tracking view filter: stage set plus optional group and crop."""
    stages: Set[str] = field(default_factory=lambda: set(DEFAULT_TRACKED_STAGES))
    group_id: str = ""
    crop_id: str = ""


def _field_names(cls):
    return {f.name for f in fields(cls) if f.init}


def plan_from_dict(data):
    """
    Build a SowingPlan or TaskPlan from a plain dict (JSON body or DB row).

    The 'type' key selects the variant. Unknown keys are ignored.

    Returns:
        The plan instance, or None if the type tag is missing or unknown.
    """
    plan_type = data.get('type')
    if plan_type == PLAN_TYPE_SOWING:
        cls = SowingPlan
    elif plan_type == PLAN_TYPE_TASK:
        cls = TaskPlan
    else:
        return None

    allowed = _field_names(cls)
    values = {k: v for k, v in data.items() if k in allowed}
    if cls is SowingPlan and 'skip_sowing_date' in values:
        values['skip_sowing_date'] = bool(values['skip_sowing_date'])
    return cls(**values)


def plan_to_dict(plan):
    """Serialize a plan to a plain dict, including its 'type' tag."""
    return asdict(plan)


def variety_to_dict(variety):
    return asdict(variety)
