import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.get_page_size(self.request)
        return Response({
            'success': True,
            'data': data,
            'pagination': {
                'page': self.page.number,
                'limit': limit,
                'total': total,
                'pages': math.ceil(total / limit) if limit else 0,
            },
        })

