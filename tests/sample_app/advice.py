from sprig import failure_advice, failure_handler


@failure_advice()
class GlobalFailureHandler:
    @failure_handler(ValueError, KeyError)
    def handle_invalid(self, failure, request):
        return {"code": "INVALID_PARAM", "path": request}

    @failure_handler()
    def handle_any(self, failure: Exception, request):
        return {"code": "SYSTEM_ERROR", "path": request}
