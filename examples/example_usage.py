"""Example: use the service layer directly (no Flask).

Controllers are a thin layer; business rules live in the services.
"""

import importlib

from config import get_settings_module

from goal_tracker.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    for node in container.goal_service.get_hierarchy(tenant_id=1):
        print(node.to_dict())
    print(container.goal_service.get_stats(tenant_id=1, query={}).to_dict())


if __name__ == "__main__":
    main()
