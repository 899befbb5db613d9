"""Page-number pagination in the response shape the API clients expect"""
from django.core.paginator import Paginator
from rest_framework.response import Response

DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100


def _positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def paginated_response(request, queryset, serializer_class, context=None):
    """Serialize one page of ``queryset`` with counts and neighbour page numbers"""
    page = _positive_int(request.query_params.get('page'), 1)
    limit = min(_positive_int(request.query_params.get('limit'), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
