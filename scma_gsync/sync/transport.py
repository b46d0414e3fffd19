"""Google API service construction."""

import google_auth_httplib2
import httplib2
from googleapiclient.discovery import build
from googleapiclient.http import HttpRequest

DEFAULT_TIMEOUT_SECONDS = 60


def build_service(api: str, version: str, credentials, timeout: int = DEFAULT_TIMEOUT_SECONDS):
    """
    Build a discovery service that is safe to share between threads.

    httplib2.Http is not thread safe, so every request gets its own
    authorized Http instance. The timeout applies per request.
    """

    def build_request(_http, *args, **kwargs):
        http = google_auth_httplib2.AuthorizedHttp(
            credentials, http=httplib2.Http(timeout=timeout)
        )
        return HttpRequest(http, *args, **kwargs)

    return build(
        api,
        version,
        credentials=credentials,
        requestBuilder=build_request,
        cache_discovery=False,
    )
