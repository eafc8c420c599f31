from uuid import UUID


def revoke_topic(tenant_id: UUID, mqtt_client_id: str) -> str:
    return f"tenant/{tenant_id}/device/{mqtt_client_id}/revoke"


def command_topic(tenant_id: UUID, mqtt_client_id: str, command: str) -> str:
    return f"tenant/{tenant_id}/device/{mqtt_client_id}/command/{command}"
