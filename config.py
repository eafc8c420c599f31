import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./claims.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    JWT_SECRET = data.get("JWT_SECRET", "dev-secret-key-change-in-production")
    ACCESS_TOKEN_MINUTES = data.get("ACCESS_TOKEN_MINUTES", 15)
    REFRESH_TOKEN_DAYS = data.get("REFRESH_TOKEN_DAYS", 30)

    # Broker connection used for revoke/command publishing
    MQTT_BROKER_URL = data.get("MQTT_BROKER_URL", "mqtt://localhost:1883")
    MQTT_USERNAME = data.get("MQTT_USERNAME", "")
    MQTT_PASSWORD = data.get("MQTT_PASSWORD", "")

    # Broker credential backend: "password_file" or "dynamic_security"
    MQTT_AUTH_MODE = data.get("MQTT_AUTH_MODE", "password_file")

    # Broker password file management
    MQTT_PASSWD_FILE = data.get("MQTT_PASSWD_FILE", "/mosquitto/config/passwd")
    MOSQUITTO_PASSWD_BIN = data.get("MOSQUITTO_PASSWD_BIN", "mosquitto_passwd")
    MQTT_RELOAD_COMMAND = data.get("MQTT_RELOAD_COMMAND", ["pkill", "-HUP", "mosquitto"])
    MQTT_RELOAD_DEBOUNCE_SECONDS = float(data.get("MQTT_RELOAD_DEBOUNCE_SECONDS", 2.0))

    # Dynamic-security admin session
    MQTT_DYNSEC_BROKER_URL = data.get("MQTT_DYNSEC_BROKER_URL", MQTT_BROKER_URL)
    MQTT_DYNSEC_ADMIN_USER = data.get("MQTT_DYNSEC_ADMIN_USER", "server_admin")
    MQTT_DYNSEC_ADMIN_PASS = data.get("MQTT_DYNSEC_ADMIN_PASS", "")
    MQTT_DYNSEC_DEFAULT_ROLE = data.get("MQTT_DYNSEC_DEFAULT_ROLE", "device")
    MQTT_DYNSEC_TIMEOUT_SECONDS = float(data.get("MQTT_DYNSEC_TIMEOUT_SECONDS", 10.0))

    # Shared secret burned into device firmware for self-registration tokens
    DEVICE_CLAIM_SECRET = data.get(
        "DEVICE_CLAIM_SECRET", "mousetrap-device-secret-change-in-production"
    )
    DEVICE_CLAIM_PREVIOUS_SECRETS = data.get("DEVICE_CLAIM_PREVIOUS_SECRETS", [])
    CLAIM_TOKEN_MAX_AGE_SECONDS = data.get("CLAIM_TOKEN_MAX_AGE_SECONDS", 300)

    CLAIM_CODE_TTL_DAYS = data.get("CLAIM_CODE_TTL_DAYS", 7)
    CLAIMING_MODE_TTL_MINUTES = data.get("CLAIMING_MODE_TTL_MINUTES", 10)
    REVOCATION_TOKEN_TTL_SECONDS = data.get("REVOCATION_TOKEN_TTL_SECONDS", 300)
    REVOCATION_SWEEP_INTERVAL_SECONDS = data.get("REVOCATION_SWEEP_INTERVAL_SECONDS", 60)

    MASTER_TENANT_ID = data.get(
        "MASTER_TENANT_ID", "00000000-0000-0000-0000-000000000001"
    )
