from .middleware import get_current_school


def resolve_school_id(request, param='school'):
    """
    Work out which school a request is about.

    Order: explicit query parameter, the tenant header/path resolved by
    TenantMiddleware, then the authenticated user's profile.

    Raises:
        ValueError: the query parameter is not an integer
    """
    school_id = request.query_params.get(param) or request.query_params.get(f'{param}_id')
    if school_id:
        return int(school_id)

    school = getattr(request, 'current_school', None) or get_current_school()
    if school is not None:
        return school.id

    user = getattr(request, 'user', None)
    if user and user.is_authenticated:
        profile = getattr(user, 'profile', None)
        if profile and profile.school_id:
            return profile.school_id
    return None
