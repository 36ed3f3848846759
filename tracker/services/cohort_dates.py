import json
import threading
from datetime import date

from ..errors import CalendarExhaustedError, FatalConfigurationError, ValidationError
from ..models.candidate import CLASS_AGENT, CLASS_UNL, LICENSED

# Cohort start dates for Licensed (AGENT) and Unlicensed (UNL) classes
COHORT_START_DATES = {
    CLASS_AGENT: [
        "2025-07-21",
        "2025-08-18",
        "2025-09-22",
        "2025-10-20",
        "2025-11-17",
        "2025-12-15",
        "2026-01-19",
    ],
    CLASS_UNL: [
        "2025-08-04",
        "2025-09-08",
        "2025-10-06",
        "2025-11-03",
        "2025-12-01",
        "2026-01-05",
        "2026-02-02",
    ],
}

CLASS_LABELS = {CLASS_AGENT: "Licensed Agent", CLASS_UNL: "Unlicensed Agent"}


def parse_date(value):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"invalid date: {value!r}", field="date")


def class_type_for(candidate):
    """Explicit class assignment wins, otherwise infer from license status."""
    data = candidate.to_dict() if hasattr(candidate, "to_dict") else (candidate or {})
    assignment = data.get("class_assignment") or {}
    if assignment.get("class_type") in COHORT_START_DATES:
        return assignment["class_type"]
    return CLASS_AGENT if data.get("license_status") == LICENSED else CLASS_UNL


def format_offer_date(d):
    return f"{d.strftime('%B')} {d.day}, {d.year}"


class CohortCalendar:
    """Fixed, ascending start dates per class type.

    The dates are finite, so they are meant to be refreshed from outside
    (``refresh`` or ``COHORT_CALENDAR_FILE``); running past the last date is
    an error rather than a silent reuse of a past date.
    """

    def __init__(self, calendars=None):
        self._lock = threading.Lock()
        self._dates = {}
        self.refresh(calendars or COHORT_START_DATES)

    @classmethod
    def from_file(cls, path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return cls(json.load(f))
        except (OSError, ValueError) as e:
            raise FatalConfigurationError(f"cannot load cohort calendar {path}: {e}")

    def refresh(self, calendars):
        parsed = {}
        for class_type, values in calendars.items():
            if class_type not in CLASS_LABELS:
                raise ValidationError(f"unknown class type: {class_type}", field="class_type")
            parsed[class_type] = sorted({parse_date(v) for v in values})
        with self._lock:
            self._dates = parsed

    def dates(self, class_type):
        with self._lock:
            if class_type not in self._dates:
                raise ValidationError(f"unknown class type: {class_type}", field="class_type")
            return list(self._dates[class_type])

    def contains(self, class_type, d):
        return parse_date(d) in self.dates(class_type)

    def next_start_date(self, class_type, today=None):
        """First calendar date strictly after ``today``."""
        today = today or date.today()
        for d in self.dates(class_type):
            if d > today:
                return d
        raise CalendarExhaustedError(
            f"no {class_type} cohort starts after {today.isoformat()}; refresh the cohort calendar",
            field="class_type",
        )

    def future_start_dates(self, class_type, today=None):
        today = today or date.today()
        return [d for d in self.dates(class_type) if d > today]

    def all_options(self):
        options = []
        for class_type, label in CLASS_LABELS.items():
            for d in self.dates(class_type) if class_type in self._dates else []:
                options.append({
                    "value": d.isoformat(),
                    "label": f"{label} - {format_offer_date(d)}",
                    "class_type": class_type,
                })
        return sorted(options, key=lambda o: o["value"])
