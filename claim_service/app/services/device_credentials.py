"""
MQTT credential generation for devices.
"""

import secrets
from dataclasses import dataclass

import bcrypt

# Matches the cost the broker's password tooling is benchmarked against
MQTT_HASH_ROUNDS = 10


@dataclass(frozen=True)
class MqttCredentials:
    username: str
    password: str
    password_hash: str


def generate_mqtt_credentials(mqtt_client_id: str) -> MqttCredentials:
    password = secrets.token_hex(16)
    password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt(MQTT_HASH_ROUNDS))
    return MqttCredentials(
        username=mqtt_client_id,
        password=password,
        password_hash=password_hash.decode(),
    )


def password_matches(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False
