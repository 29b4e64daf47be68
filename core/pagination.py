from rest_framework import serializers

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


class PageParamsSerializer(serializers.Serializer):
    """
    ?limit= / ?offset= query parameters. Out-of-range values are clamped;
    anything that is not an integer is a 400.
    """
    limit = serializers.IntegerField(required=False, default=DEFAULT_LIMIT)
    offset = serializers.IntegerField(required=False, default=0)

    def validate_limit(self, value):
        return max(1, min(value, MAX_LIMIT))

    def validate_offset(self, value):
        return max(0, value)


def paginate(request, qs, serializer_class):
    params = PageParamsSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    limit = params.validated_data["limit"]
    offset = params.validated_data["offset"]

    total_count = qs.count()
    page = qs[offset: offset + limit]
    return {
        "count": total_count,
        "results": serializer_class(page, many=True).data,
        "limit": limit,
        "offset": offset,
    }
