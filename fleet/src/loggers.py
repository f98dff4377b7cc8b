from fleet.src import openobserve
from fleet.src.schemas import RequestInfo


def logEvent(requestInfo: RequestInfo, data: dict) -> None:
    """
    Log an audit event to OpenObserve with request context.

    Args:
        requestInfo (RequestInfo): Metadata about the current request.
        data (dict): The written record, JSON encoded.

    Notes:
        - Automatically attaches `_app_id`, `_method` and `_path`.
    """
    logDetails = {
        "_method": requestInfo.method,
        "_path": requestInfo.path,
        "_app_id": requestInfo.app_id,
    }
    logDetails.update(data)
    openobserve.logEvent(logDetails)
