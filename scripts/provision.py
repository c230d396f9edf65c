"""
Provision Script - Message Ingest Service
Creates (up) or deletes (down) the Pub/Sub and Cloud Storage resources.

    APP_ENV=local python scripts/provision.py up
"""

import argparse
import json
import logging

from message_ingest.config import load_config
from message_ingest.provisioning import provision, teardown
from message_ingest.publisher import create_publisher_client
from message_ingest.storage import create_storage_client
from message_ingest.subscriber import create_subscriber_client


def main():
    parser = argparse.ArgumentParser(description="Provision message ingest resources")
    parser.add_argument("action", choices=["up", "down"], help="Create or delete resources")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    config = load_config()
    publisher = create_publisher_client(config)
    subscriber = create_subscriber_client(config)
    storage_client = create_storage_client(config)

    print(f"Environment: {config.app_env} (project {config.project_id})")

    if args.action == "up":
        outputs = provision(config, publisher, subscriber, storage_client)
        print(json.dumps(outputs, indent=2))
    else:
        teardown(config, publisher, subscriber, storage_client)
        print("Resources deleted")


if __name__ == "__main__":
    main()
