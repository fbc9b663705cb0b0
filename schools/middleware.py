from django.utils.deprecation import MiddlewareMixin
from .models import School
import threading

_thread_locals = threading.local()


def get_current_school():
    """Returns the current school for this request/thread."""
    return getattr(_thread_locals, 'school', None)


def _lookup(school_id):
    try:
        return School.objects.get(pk=int(school_id))
    except (School.DoesNotExist, ValueError, TypeError):
        return None


class TenantMiddleware(MiddlewareMixin):
    """Attach the school addressed by the request, if any."""

    def process_request(self, request):
        school = None

        # Dashboards send the school in a custom header
        school_id = request.META.get('HTTP_X_SCHOOL_ID')
        if school_id:
            school = _lookup(school_id)
        else:
            # Path-based: /school/<id>/...
            path_parts = request.path.strip('/').split('/')
            if len(path_parts) > 1 and path_parts[0] == 'school':
                school = _lookup(path_parts[1])

        _thread_locals.school = school
        request.current_school = school

    def process_response(self, request, response):
        _thread_locals.school = None
        return response
