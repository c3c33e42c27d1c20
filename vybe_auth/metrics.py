from prometheus_fastapi_instrumentator import Instrumentator


def build_instrumentator() -> Instrumentator:
    return Instrumentator(
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics"],
        should_instrument_requests_inprogress=True,
        should_group_status_codes=False,
    )
