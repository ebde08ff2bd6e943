"""
Cosmetica API Python Client - Basic Usage Example

Logs in with a temporary token and reads the user's settings.
"""

import logging
import sys

from cosmetica_api import (
    ApplicationError,
    CosmeticaClient,
    CosmeticaConfig,
    FatalError,
    InitializationError,
    RecoverableError,
    ServiceContext,
    TrustTier,
    Value,
)


def main(temporary_token: str, player_id: str) -> None:
    logging.basicConfig(level=logging.DEBUG)

    # One context per application; the topology is cached for offline starts
    context = ServiceContext(CosmeticaConfig(cache_path="cosmetica-api.json", debug=True))

    try:
        client = CosmeticaClient.from_temp_token(temporary_token, player_id, context)
    except InitializationError as e:
        print(f"Cosmetica is unreachable and nothing is cached: {e.message}")
        return
    except ApplicationError as e:
        print(f"Login rejected: {e.reason}")
        return

    print(f"Server message: {context.message}")
    print(f"Login info: {client.login_info}")

    with client:
        outcome = client.get("/v2/get/settings", TrustTier.FULL)

    if isinstance(outcome, Value):
        print(f"Settings: {outcome.value}")
    elif isinstance(outcome, RecoverableError):
        print(f"{outcome.kind} error from {outcome.source_url}: {outcome.message}")
    elif isinstance(outcome, FatalError):
        print(f"Server fault {outcome.status_code}; try again later")


if __name__ == "__main__":
    main(sys.argv[1], sys.argv[2])
