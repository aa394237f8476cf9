from prometheus_client import Counter, Gauge, Histogram, Info
from prometheus_fastapi_instrumentator import Instrumentator

# Business metrics - Booking Core specific
bookings_total = Counter(
    "fleet_bookings_created_total",
    "Total number of bookings created",
    ["service", "status"],  # service=booking-core, status=pending/confirmed
)

availability_checks_total = Counter(
    "fleet_availability_checks_total",
    "Total availability checks",
    ["service", "result"],  # result=available/conflict
)

commission_report_duration = Histogram(
    "fleet_commission_report_duration_seconds",
    "Duration of commission report generation",
    ["service"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

commission_report_vehicles = Gauge(
    "fleet_commission_report_vehicles_last",
    "Number of vehicles in the last commission report",
    ["service"],
)

commission_report_failures_total = Counter(
    "fleet_commission_report_vehicle_failures_total",
    "Vehicles whose bookings could not be loaded for a commission report",
    ["service"],
)

# Application info
app_info = Info("fleet_app_info", "Application information")


def setup_instrumentator() -> Instrumentator:
    return Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/api/v1/health"],
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )


def init_app_info(version: str = "1.0.0"):
    app_info.info({"version": version, "service": "booking-core", "component": "api"})


class MetricsCollector:
    SERVICE_NAME = "booking-core"

    @staticmethod
    def record_booking(status: str):
        bookings_total.labels(
            service=MetricsCollector.SERVICE_NAME, status=status
        ).inc()

    @staticmethod
    def record_availability_check(available: bool):
        result = "available" if available else "conflict"
        availability_checks_total.labels(
            service=MetricsCollector.SERVICE_NAME, result=result
        ).inc()

    @staticmethod
    def record_report(duration: float, vehicles: int):
        commission_report_duration.labels(
            service=MetricsCollector.SERVICE_NAME
        ).observe(duration)
        commission_report_vehicles.labels(service=MetricsCollector.SERVICE_NAME).set(
            vehicles
        )

    @staticmethod
    def record_report_vehicle_failure():
        commission_report_failures_total.labels(
            service=MetricsCollector.SERVICE_NAME
        ).inc()
