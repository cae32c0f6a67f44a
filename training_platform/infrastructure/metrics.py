from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Метрики для HTTP запросов
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# Переходы жизненного цикла записей на курсы
enrollment_transitions_total = Counter(
    'enrollment_transitions_total',
    'Enrollment lifecycle transitions',
    ['transition']
)

# Каскадные удаления
cascade_deletions_total = Counter(
    'cascade_deletions_total',
    'Course and user deletions',
    ['resource', 'force']
)

cascade_enrollments_affected_total = Counter(
    'cascade_enrollments_affected_total',
    'Enrollments removed or cancelled by cascading deletes',
    ['resource']
)

# Отказы по правам и бизнес-правилам
domain_errors_total = Counter(
    'domain_errors_total',
    'Domain errors returned to clients',
    ['error']
)

def metrics_endpoint():
    """Endpoint для Prometheus метрик"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
