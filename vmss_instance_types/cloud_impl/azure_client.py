import logging

from azure.core.credentials import TokenCredential
from azure.identity import ClientSecretCredential, DefaultAzureCredential

from vmss_instance_types.constants import AZURE_MGMT_URL

AZURE_TENANT_ID: str = ""
AZURE_CLIENT_ID: str = ""
AZURE_CLIENT_SECRET: str = ""

# Token acquisition logs every credential in the chain it tries
logging.getLogger("azure").setLevel(logging.ERROR)


def set_credentials(
    tenant_id: str = "",
    client_id: str = "",
    client_secret: str = "",
):
    """A service principal if fully specified, otherwise DefaultAzureCredential
    (env vars, managed identity, AZ CLI login) will be used"""
    if tenant_id and client_id and client_secret:
        global AZURE_TENANT_ID
        global AZURE_CLIENT_ID
        global AZURE_CLIENT_SECRET
        AZURE_TENANT_ID = tenant_id
        AZURE_CLIENT_ID = client_id
        AZURE_CLIENT_SECRET = client_secret


def get_credential() -> TokenCredential:
    if AZURE_TENANT_ID and AZURE_CLIENT_ID and AZURE_CLIENT_SECRET:
        return ClientSecretCredential(
            tenant_id=AZURE_TENANT_ID,
            client_id=AZURE_CLIENT_ID,
            client_secret=AZURE_CLIENT_SECRET,
        )
    return DefaultAzureCredential()


def get_auth_headers(credential: TokenCredential) -> dict[str, str]:
    token = credential.get_token(f"{AZURE_MGMT_URL}/.default")
    return {
        "Authorization": f"Bearer {token.token}",
        "Content-Type": "application/json",
    }
