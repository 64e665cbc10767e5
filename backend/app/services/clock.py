"""
Clock and timezone service.

All instants are stored as naive UTC datetimes. Display formatting and
"calendar day" queries go through a TimezoneService, which resolves the
configured IANA zone once and caches it until the setting changes.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ValidationError

logger = logging.getLogger(__name__)

TIMEZONE_SETTING_KEY = "timezone"
INVALID_TIMESTAMP = "Invalid date"


def utcnow() -> datetime:
    """Current instant as naive UTC (storage representation)."""
    return datetime.now(dt_timezone.utc).replace(tzinfo=None)


def load_zone(name: str) -> ZoneInfo:
    """Return the ZoneInfo for `name`, raising ValidationError if unknown."""
    if not name or not isinstance(name, str):
        raise ValidationError("Timezone must be a non-empty IANA name")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone: {name}") from e


def to_utc(local: datetime, zone: ZoneInfo) -> datetime:
    """Convert a civil time in `zone` to a naive UTC instant."""
    return local.replace(tzinfo=zone).astimezone(dt_timezone.utc).replace(tzinfo=None)


class TimezoneService:
    """
    Owns the canonical display timezone.

    One instance lives on the FastAPI app state; the cached value is
    cleared explicitly by invalidate_timezone_cache() whenever an
    administrator writes the `timezone` setting.
    """

    def __init__(self, default_timezone: str = "Asia/Shanghai"):
        # A broken default would make every fallback fail
        load_zone(default_timezone)
        self.default_timezone = default_timezone
        self._cached: Optional[str] = None

    @property
    def current(self) -> str:
        """Cached timezone if resolved, otherwise the default. No I/O."""
        return self._cached or self.default_timezone

    async def resolve_timezone(self, db: AsyncSession) -> str:
        """
        Resolve the configured timezone.

        Order of precedence: cache, persisted `timezone` setting, default.
        Never raises; any failure falls back to the default.
        """
        if self._cached:
            return self._cached

        # Imported here: models import utcnow from this module
        from app.models.system_setting import SystemSetting

        try:
            result = await db.execute(
                select(SystemSetting.value).where(SystemSetting.key == TIMEZONE_SETTING_KEY)
            )
            value = result.scalar_one_or_none()
            if value:
                load_zone(value)
                self._cached = value
                logger.info(f"Timezone resolved from settings: {value}")
                return value
            logger.info(f"No timezone setting, using default {self.default_timezone}")
        except ValidationError as e:
            logger.warning(f"Ignoring malformed timezone setting: {e.message}")
        except Exception as e:
            logger.warning(
                f"Failed to read timezone setting, using default {self.default_timezone}: {e}"
            )

        self._cached = self.default_timezone
        return self._cached

    def invalidate_timezone_cache(self) -> None:
        """Force the next resolve_timezone() to re-read the setting."""
        self._cached = None
        logger.info("Timezone cache invalidated")

    def format_timestamp(
        self,
        instant: Union[datetime, str, None],
        include_seconds: bool = True,
        timezone: Optional[str] = None,
    ) -> str:
        """
        Render an instant as YYYY/MM/DD HH:MM[:SS] (24-hour) in the display zone.

        Naive datetimes are treated as UTC. Returns INVALID_TIMESTAMP instead
        of raising for None, unparsable strings or unknown zones.
        """
        try:
            if isinstance(instant, str):
                instant = datetime.fromisoformat(instant.replace("Z", "+00:00"))
            if not isinstance(instant, datetime):
                return INVALID_TIMESTAMP
            if instant.tzinfo is None:
                instant = instant.replace(tzinfo=dt_timezone.utc)
            zone = load_zone(timezone or self.current)
            local = instant.astimezone(zone)
        except (ValueError, TypeError, OverflowError, ValidationError):
            return INVALID_TIMESTAMP

        fmt = "%Y/%m/%d %H:%M:%S" if include_seconds else "%Y/%m/%d %H:%M"
        return local.strftime(fmt)

    def day_bounds(
        self,
        calendar_date: Union[str, date],
        timezone: Optional[str] = None,
    ) -> Tuple[datetime, datetime]:
        """
        Return (start, end) naive-UTC instants of a calendar day in a zone.

        start is civil midnight of the day, end is one millisecond before
        civil midnight of the following day. Both are computed from civil
        times in the target zone, so DST days have their true length and the
        host's local offset plays no part.
        """
        if isinstance(calendar_date, str):
            try:
                day = date.fromisoformat(calendar_date)
            except ValueError as e:
                raise ValidationError(
                    f"Invalid calendar date '{calendar_date}', expected YYYY-MM-DD"
                ) from e
        elif isinstance(calendar_date, date):
            day = calendar_date
        else:
            raise ValidationError("Calendar date must be a YYYY-MM-DD string or a date")

        zone = load_zone(timezone or self.current)
        start = to_utc(datetime.combine(day, time.min), zone)
        next_start = to_utc(datetime.combine(day + timedelta(days=1), time.min), zone)
        return start, next_start - timedelta(milliseconds=1)

    def today(self, timezone: Optional[str] = None) -> date:
        """Current calendar date in the display zone."""
        zone = load_zone(timezone or self.current)
        return datetime.now(dt_timezone.utc).astimezone(zone).date()
