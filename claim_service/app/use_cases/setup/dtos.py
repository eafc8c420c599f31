"""
Setup Use Case DTOs

Commands and responses for the device captive-portal setup flow.
"""

from typing import Optional

from pydantic import EmailStr, Field, field_validator

from claim_service.app.use_cases.dtos import CamelModel


class RegisterAndClaimCommand(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    device_name: str = Field(..., min_length=1, max_length=255)
    mac: str = Field(..., pattern=r"^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$")
    claim_token: str = Field(..., min_length=1)
    timestamp: str = Field(..., pattern=r"^\d+$")
    is_new_account: bool = True
    timezone: str = "UTC"
    actor_ip: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def timestamp_as_text(cls, value):
        # Firmware sends the unix timestamp as a JSON number
        return str(value) if isinstance(value, int) else value


class MqttCredentialsInfo(CamelModel):
    username: str
    password: str


class SetupUserInfo(CamelModel):
    id: str
    email: str
    tenant_id: str


class SetupDeviceInfo(CamelModel):
    id: str
    name: str
    mqtt_client_id: str
    mqtt_username: str
    mqtt_password: str
    mqtt_broker_url: str


class RegisterAndClaimResponse(CamelModel):
    user: SetupUserInfo
    device: SetupDeviceInfo
    jwt: str
    refresh_token: str
    mqtt_broker: str
    mqtt_credentials: MqttCredentialsInfo
    new_account: bool
    reclaimed: bool


class RecoverClaimResponse(CamelModel):
    recovered: bool = True
    device_id: str
    tenant_id: str
    mqtt_client_id: str
    mqtt_broker: str
    mqtt_credentials: MqttCredentialsInfo
    device_name: str
