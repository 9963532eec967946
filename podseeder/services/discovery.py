"""
Account discovery - maps a generated data directory to pods.

Layout expected below the root:
    root/<account>/...files for the pod of <account>...

Accounts and pods always share the name of their subdirectory.
"""
import logging
from pathlib import Path
from typing import List, Optional

from ..errors import DiscoveryError
from ..models import DEFAULT_PASSWORD, AccountOrder, PodIdentity, account_email
from .listing import DirectoryLister

logger = logging.getLogger(__name__)


async def find_accounts_from_dir(
    root: str,
    create_account_uri: Optional[str] = None,
    lister: Optional[DirectoryLister] = None,
) -> List[AccountOrder]:
    """
    Build one account order per immediate subdirectory of root.

    Args:
        root: Directory containing one subdirectory per account
        create_account_uri: Account creation endpoint of the target server
        lister: Directory lister (default: DirectoryLister)

    Returns:
        Account orders in listing order, index assigned 0-based
    """
    root_path = Path(root)
    if not root_path.exists():
        raise DiscoveryError(f"source directory does not exist: {root}")
    if not root_path.is_dir():
        raise DiscoveryError(f"source is not a directory: {root}")

    lister = lister or DirectoryLister()
    listing = await lister.list(str(root_path.resolve()), False)

    orders: List[AccountOrder] = []
    for account_dir in listing.dirs:
        orders.append(
            AccountOrder(
                username=account_dir.name,
                password=DEFAULT_PASSWORD,
                pod_name=account_dir.name,
                email=account_email(account_dir.name),
                index=len(orders),
                dir=account_dir.full_path,
                create_account_uri=create_account_uri,
            )
        )

    logger.info("Discovered %d account(s) in %s", len(orders), root)
    return orders


def resolve_identity(order: AccountOrder, server_url: str) -> PodIdentity:
    """Resolve an account order to the pod it owns on a Solid server."""
    server = server_url.rstrip("/")
    pod_uri = f"{server}/{order.pod_name}/"
    return PodIdentity(
        username=order.username,
        web_id=f"{pod_uri}profile/card#me",
        pod_uri=pod_uri,
        oidc_issuer=f"{server}/",
        index=order.index,
        dir=order.dir,
    )
