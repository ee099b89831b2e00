from django.http import JsonResponse
from rest_framework.response import Response


def health_check(request):
    """Liveness probe for the hosting platform."""
    return JsonResponse({'status': 'ok'})


def service_error_response(exc):
    """Render a service-layer exception as ``{'error', 'code'}``."""
    return Response(
        {'error': str(exc), 'code': exc.code},
        status=exc.status_code
    )


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'error': 'Not found',
        'status': 404
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'error': 'Internal server error',
        'status': 500
    }, status=500)
