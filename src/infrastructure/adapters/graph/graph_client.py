"""Microsoft Graph client construction."""

from azure.identity import ClientSecretCredential
from kiota_abstractions.base_request_configuration import RequestConfiguration
from msgraph import GraphServiceClient
from msgraph.generated.users.item.user_item_request_builder import UserItemRequestBuilder

from src.domain.models.errors import UpstreamUnavailable
from src.domain.models.graph_models import GraphCredentials

GRAPH_SCOPES = ['https://graph.microsoft.com/.default']

# Upper bound for a single Graph lookup.
GRAPH_TIMEOUT_SECONDS = 10.0


def create_graph_client(credentials: GraphCredentials) -> GraphServiceClient:
    """Build an app-only Graph client for one tenancy."""
    credential = ClientSecretCredential(
        tenant_id=credentials.tenant_id,
        client_id=credentials.client_id,
        client_secret=credentials.client_secret
    )
    return GraphServiceClient(credentials=credential, scopes=GRAPH_SCOPES)


async def resolve_user_id(graph_client: GraphServiceClient, email: str) -> str:
    """
    Look up the directory object ID behind a mailbox address.

    Per-user endpoints are then called by ID, which also works for
    mailboxes whose address differs from their user principal name.

    Raises:
        ODataError: Graph rejected the lookup (403/404 included)
        UpstreamUnavailable: Graph answered without an ID
    """
    query_params = UserItemRequestBuilder.UserItemRequestBuilderGetQueryParameters(select=["id"])
    user = await graph_client.users.by_user_id(email).get(
        request_configuration=RequestConfiguration(query_parameters=query_params)
    )
    if user is None or not user.id:
        raise UpstreamUnavailable(f"Graph returned no user ID for {email}")
    return user.id
