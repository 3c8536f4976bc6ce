"""System attributes computed once per session.

Operating hours, holidays and the call centre time zone come from the
configuration items:

- CallCentreTimeZone: IANA zone name
- OperatingHours: [{Name, Id, Arn, Timezone, Config: [{Day, StartTime, EndTime}]}]
- Holidays: [{when: "YYYYMMDD", ...}]
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60


def time_of_day(hour: int) -> str:
    """Bucket a local hour into morning, afternoon or evening."""
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


def format_utc(when: datetime) -> str:
    return when.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_local(when: datetime) -> str:
    return when.isoformat(timespec="seconds")


def resolve_time_zone(config_items: Mapping[str, Any], default: str) -> ZoneInfo:
    return ZoneInfo(config_items.get("CallCentreTimeZone") or default)


def is_holiday(config_items: Mapping[str, Any], local_now: datetime) -> bool:
    """Whether the local date matches a configured holiday."""
    today = local_now.strftime("%Y%m%d")
    return any(
        holiday.get("when") == today
        for holiday in config_items.get("Holidays") or []
    )


def evaluate_operating_hours(hours: Mapping[str, Any], now: datetime) -> dict[str, Any]:
    """Open status of one operating hours definition at a point in time.

    A day configured 00:00 to 00:00 is open all day, reported with -1 for
    both ClosingInMins and OpeningInMins.
    """
    zone = hours.get("Timezone")
    local = now.astimezone(ZoneInfo(zone)) if zone else now
    day_name = local.strftime("%A").upper()
    now_minutes = local.hour * 60 + local.minute

    is_open = False
    closing_in: int | None = None
    opening_in: int | None = None

    for config in hours.get("Config") or []:
        if config.get("Day") != day_name:
            continue

        start = config["StartTime"]["Hours"] * 60 + config["StartTime"]["Minutes"]
        end = config["EndTime"]["Hours"] * 60 + config["EndTime"]["Minutes"]

        if start == 0 and end == 0:
            is_open = True
            closing_in = -1
            opening_in = -1
        elif start <= now_minutes <= end:
            is_open = True
            closing_in = end - now_minutes
        else:
            opening_in = start - now_minutes
            if opening_in <= 0:
                opening_in += MINUTES_PER_DAY

    return {
        "Name": hours.get("Name"),
        "Id": hours.get("Id"),
        "Arn": hours.get("Arn"),
        "Open": "true" if is_open else "false",
        "ClosingInMins": closing_in,
        "OpeningInMins": opening_in,
    }


def evaluate_all_operating_hours(
    config_items: Mapping[str, Any], now: datetime
) -> dict[str, dict[str, Any]]:
    """Open status keyed by operating hours name."""
    return {
        hours["Name"]: evaluate_operating_hours(hours, now)
        for hours in config_items.get("OperatingHours") or []
    }


def build_system_attributes(
    contact_id: str,
    now: datetime,
    config_items: Mapping[str, Any],
    default_time_zone: str = "UTC",
    dialled_number: str | None = None,
    end_point: str | None = None,
) -> dict[str, Any]:
    """Compute the System attribute map for a new session."""
    zone = resolve_time_zone(config_items, default_time_zone)
    utc_now = now.astimezone(UTC)
    local_now = utc_now.astimezone(zone)

    system: dict[str, Any] = {
        "ContactId": contact_id,
        "Holiday": "true" if is_holiday(config_items, local_now) else "false",
        "OperatingHours": evaluate_all_operating_hours(config_items, utc_now),
        "DialledNumber": dialled_number or "Unknown",
        "DateTimeUTC": format_utc(utc_now),
        "DateTimeLocal": format_local(local_now),
        "TimeLocal": local_now.strftime("%I:%M %p"),
        "TimeOfDay": time_of_day(local_now.hour),
    }
    if end_point is not None:
        system["EndPoint"] = end_point
    return system
