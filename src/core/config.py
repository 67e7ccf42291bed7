"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from src.core.destination import FocusRegion
from src.core.geo import BoundingBox, GeoPoint, NeighborCountry


USGS_FEED_BASE = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"

DEFAULT_FEED_ENDPOINTS = (
    f"{USGS_FEED_BASE}/all_hour.geojson",
    f"{USGS_FEED_BASE}/4.5_hour.geojson",
    f"{USGS_FEED_BASE}/2.5_hour.geojson",
)

DEFAULT_RECENT_EVENTS_ENDPOINT = f"{USGS_FEED_BASE}/4.5_day.geojson"

WEBHOOK_URL_PREFIX = "https://discord.com/api/webhooks/"

DEFAULT_NEIGHBORS = (
    NeighborCountry("Myanmar", ("myanmar", "burma")),
    NeighborCountry("Laos", ("laos", "lao")),
    NeighborCountry("Cambodia", ("cambodia",)),
    NeighborCountry("Vietnam", ("vietnam",)),
    NeighborCountry("Malaysia", ("malaysia",)),
    NeighborCountry("Indonesia", ("indonesia", "sumatra")),
    NeighborCountry("Philippines", ("philippines",)),
)


@dataclass(frozen=True)
class RegionProfile:
    """The three-tier region layout around the focal anchor.

    Attributes:
        anchor: Distance origin for scoring and proximity
        primary_bounds: Box around the focal country
        neighbors: Neighboring countries matched by place keywords
        extended_bounds: Broader regional box
        continental_bounds: Continent-wide box for the continental focus
        primary_radius_km: Proximity that also counts as primary focus
    """
    anchor: GeoPoint = GeoPoint("Bangkok", 13.7563, 100.5018)
    primary_bounds: BoundingBox = BoundingBox(5.0, 22.0, 97.0, 106.0)
    neighbors: tuple[NeighborCountry, ...] = DEFAULT_NEIGHBORS
    extended_bounds: BoundingBox = BoundingBox(-11.0, 28.0, 92.0, 141.0)
    continental_bounds: BoundingBox = BoundingBox(-11.0, 82.0, 25.0, 180.0)
    primary_radius_km: float = 1000.0
    primary_label: str = "THAILAND AREA"
    neighbor_label: str = "NEIGHBORING COUNTRY"
    extended_label: str = "SOUTHEAST ASIA"


@dataclass(frozen=True)
class ScoringConfig:
    """Priority score adjustments. Lower scores are more urgent.

    Magnitude steps are (min_magnitude, penalty) pairs checked from the
    top; distance steps are (max_distance_km, penalty) pairs, strict <.
    """
    baseline: int = 100
    magnitude_steps: tuple[tuple[float, int], ...] = (
        (7.0, 50),
        (6.0, 30),
        (5.0, 15),
        (4.0, 5),
    )
    primary_adjustment: int = 25
    neighbor_adjustment: int = 15
    distance_steps: tuple[tuple[float, int], ...] = (
        (500.0, 20),
        (1000.0, 10),
        (2000.0, 5),
    )


@dataclass(frozen=True)
class MagnitudeThresholds:
    """Default minimum magnitude per destination focus region."""
    global_min: float = 4.0
    primary_min: float = 3.0
    extended_min: float = 4.0
    continental_min: float = 4.5

    def for_focus(self, focus: FocusRegion) -> float:
        """Threshold for a focus region."""
        return {
            FocusRegion.GLOBAL: self.global_min,
            FocusRegion.PRIMARY: self.primary_min,
            FocusRegion.EXTENDED: self.extended_min,
            FocusRegion.CONTINENTAL: self.continental_min,
        }[focus]


@dataclass(frozen=True)
class DedupConfig:
    """Bounds on the in-memory dedup set.

    Attributes:
        max_size: Evict once the set grows beyond this
        keep_size: Size retained after eviction
    """
    max_size: int = 1000
    keep_size: int = 500


@dataclass(frozen=True)
class ReconnectPolicy:
    """How the destination registry recovers from store outages.

    Attributes:
        backoff_seconds: Fixed delay between reconnection attempts
        max_queue_depth: Deferred writes kept; oldest dropped beyond this
    """
    backoff_seconds: float = 60.0
    max_queue_depth: int = 100


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        polling_interval_seconds: How often the pipeline runs
        fetch_timeout_seconds: Hard timeout per feed request
        feed_endpoints: Feed URLs polled each tick
        recent_events_endpoint: Feed URL for the recent-events query
        min_ingest_magnitude: Events below this are ignored entirely
        region: Region layout around the focal anchor
        scoring: Priority score table
        thresholds: Per-focus default minimum magnitudes
        dedup: Dedup set bounds
        reconnect: Registry reconnection policy
        discord_bot_token: Bot token for channel delivery
        webhook_url: Optional webhook receiving every new event
        firestore_database: Firestore database name (None for default)
        firestore_collection: Firestore collection for destinations
        firestore_timeout_seconds: Per-call Firestore timeout
        dispatch_workers: Concurrent deliveries per event
        health_port: Port for the liveness server (0 disables it)
        display_utc_offset_hours: Offset for rendered local times
    """
    polling_interval_seconds: int = 30
    fetch_timeout_seconds: float = 15.0
    feed_endpoints: list[str] = field(
        default_factory=lambda: list(DEFAULT_FEED_ENDPOINTS)
    )
    recent_events_endpoint: str = DEFAULT_RECENT_EVENTS_ENDPOINT
    min_ingest_magnitude: float | None = 2.5
    region: RegionProfile = field(default_factory=RegionProfile)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    thresholds: MagnitudeThresholds = field(default_factory=MagnitudeThresholds)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    reconnect: ReconnectPolicy = field(default_factory=ReconnectPolicy)
    discord_bot_token: str | None = None
    webhook_url: str | None = None
    firestore_database: str | None = None
    firestore_collection: str = "destinations"
    firestore_timeout_seconds: float = 10.0
    dispatch_workers: int = 4
    health_port: int = 8080
    display_utc_offset_hours: float = 7.0

    @property
    def webhook_enabled(self) -> bool:
        """True when a usable webhook URL is configured."""
        return bool(self.webhook_url) and self.webhook_url.startswith(WEBHOOK_URL_PREFIX)


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_coordinates(lat: float, lon: float, field_name: str) -> list[ValidationError]:
    """Validate latitude/longitude coordinates.

    Pure function.
    """
    errors = []

    if not -90 <= lat <= 90:
        errors.append(ValidationError(
            field=field_name,
            message=f"Latitude {lat} out of range [-90, 90]",
        ))

    if not -180 <= lon <= 180:
        errors.append(ValidationError(
            field=field_name,
            message=f"Longitude {lon} out of range [-180, 180]",
        ))

    return errors


def validate_bounds(bounds: BoundingBox, field_name: str) -> list[ValidationError]:
    """Validate a bounding box.

    Pure function.
    """
    errors = []

    errors.extend(validate_coordinates(
        bounds.min_latitude, bounds.min_longitude, f"{field_name}.min",
    ))
    errors.extend(validate_coordinates(
        bounds.max_latitude, bounds.max_longitude, f"{field_name}.max",
    ))

    if bounds.min_latitude > bounds.max_latitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_latitude ({bounds.min_latitude}) > max_latitude ({bounds.max_latitude})",
        ))

    if bounds.min_longitude > bounds.max_longitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_longitude ({bounds.min_longitude}) > max_longitude ({bounds.max_longitude})",
        ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []
    region = config.region

    errors.extend(validate_coordinates(
        region.anchor.latitude, region.anchor.longitude, "region.anchor",
    ))
    errors.extend(validate_bounds(region.primary_bounds, "region.primary_bounds"))
    errors.extend(validate_bounds(region.extended_bounds, "region.extended_bounds"))
    errors.extend(validate_bounds(region.continental_bounds, "region.continental_bounds"))

    if region.primary_radius_km <= 0:
        errors.append(ValidationError(
            field="region.primary_radius_km",
            message=f"Primary radius must be positive, got {region.primary_radius_km}",
        ))

    if config.polling_interval_seconds <= 0:
        errors.append(ValidationError(
            field="polling_interval_seconds",
            message=f"Polling interval must be positive, got {config.polling_interval_seconds}",
        ))

    if config.fetch_timeout_seconds <= 0:
        errors.append(ValidationError(
            field="fetch_timeout_seconds",
            message=f"Fetch timeout must be positive, got {config.fetch_timeout_seconds}",
        ))
    elif config.fetch_timeout_seconds >= config.polling_interval_seconds > 0:
        errors.append(ValidationError(
            field="fetch_timeout_seconds",
            message="Fetch timeout is not shorter than the polling interval; ticks may overlap",
            severity="warning",
        ))

    if config.firestore_timeout_seconds <= 0:
        errors.append(ValidationError(
            field="firestore_timeout_seconds",
            message=f"Firestore timeout must be positive, got {config.firestore_timeout_seconds}",
        ))

    if not config.feed_endpoints:
        errors.append(ValidationError(
            field="feed_endpoints",
            message="No feed endpoints configured",
        ))

    if config.dedup.keep_size <= 0 or config.dedup.keep_size > config.dedup.max_size:
        errors.append(ValidationError(
            field="dedup",
            message=(
                f"keep_size ({config.dedup.keep_size}) must be in "
                f"(0, max_size={config.dedup.max_size}]"
            ),
        ))

    if config.reconnect.backoff_seconds <= 0:
        errors.append(ValidationError(
            field="reconnect.backoff_seconds",
            message=f"Backoff must be positive, got {config.reconnect.backoff_seconds}",
        ))

    if config.reconnect.max_queue_depth <= 0:
        errors.append(ValidationError(
            field="reconnect.max_queue_depth",
            message=f"Queue depth must be positive, got {config.reconnect.max_queue_depth}",
        ))

    if config.dispatch_workers <= 0:
        errors.append(ValidationError(
            field="dispatch_workers",
            message=f"Dispatch workers must be positive, got {config.dispatch_workers}",
        ))

    if config.webhook_url and not config.webhook_enabled:
        errors.append(ValidationError(
            field="webhook_url",
            message=f"Webhook URL must start with {WEBHOOK_URL_PREFIX}; it will be ignored",
            severity="warning",
        ))

    if not config.discord_bot_token or config.discord_bot_token.startswith("${"):
        errors.append(ValidationError(
            field="discord_bot_token",
            message="Bot token not resolved; channel deliveries will fail",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
