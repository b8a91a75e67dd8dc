"""
Callback URL handed to the provider.

When the execution is an alternative the user may "try another way", so the
URL has to carry enough of the host flow (client, execution, tab and session
code) for the flow engine to resume at this step.
"""
from urllib.parse import quote

from .context import LoginContext

CALLBACK_PATH = "/duo-universal/callback"


def _encode(value: str) -> str:
    return quote(value, safe="")


class CallbackURLBuilder:
    def build(self, base_uri: str, realm: str, client_id: str, execution_id: str,
              tab_id: str, continuation_code: str) -> str:
        return (
            base_uri.rstrip("/")
            + "/realms/" + _encode(realm)
            + CALLBACK_PATH
            + "?kc_client_id=" + _encode(client_id)
            + "&kc_execution=" + _encode(execution_id)
            + "&kc_tab_id=" + _encode(tab_id)
            + "&kc_session_code=" + _encode(continuation_code)
        )

    def continuation_code(self, context: LoginContext, force_token: bool) -> str:
        params = context.query_params
        if "duo_code" in params and "session_code" in params and not force_token:
            # The provider only releases its result for the session code of the first redirect
            return params["session_code"]
        return context.generate_access_code()

    def redirect_url(self, context: LoginContext, force_token: bool) -> str:
        if not context.execution.alternative:
            return context.refresh_url

        return self.build(
            base_uri=context.base_uri,
            realm=context.realm,
            client_id=context.client.client_id,
            execution_id=context.execution.id,
            tab_id=context.tab_id,
            continuation_code=self.continuation_code(context, force_token),
        )
