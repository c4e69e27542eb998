from rest_framework.renderers import JSONRenderer


class EnvelopeJSONRenderer(JSONRenderer):
    """Wrap successful payloads as ``{"success": true, "data": ...}``.

    Bodies that already carry a ``success`` key (errors, paginated lists)
    are rendered unchanged.
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b''
        if not (isinstance(data, dict) and 'success' in data):
            response = (renderer_context or {}).get('response')
            if response is not None and response.status_code >= 400:
                data = {'success': False, 'error': data}
            else:
                data = {'success': True, 'data': data}
        return super().render(data, accepted_media_type, renderer_context)
