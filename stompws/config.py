"""Configuration management for the STOMP client."""

import os
import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Optional, List
from pathlib import Path

from .client import ClientConfig
from .heartbeat import HeartbeatConfig
from .network import DEFAULT_PROTOCOLS


class ConnectionSettings(BaseSettings):
    """Broker connection configuration."""
    model_config = SettingsConfigDict(env_prefix='STOMPWS_CONNECTION_')

    url: str = Field(default="ws://localhost:15674/ws", description="Broker WebSocket URL")
    protocols: List[str] = Field(default_factory=lambda: list(DEFAULT_PROTOCOLS),
                                 description="WebSocket subprotocols")
    login: Optional[str] = Field(default=None, description="CONNECT login header")
    passcode: Optional[str] = Field(default=None, description="CONNECT passcode header")
    host: Optional[str] = Field(default=None, description="CONNECT host header (virtual host)")
    connect_timeout: float = Field(default=10.0, gt=0, description="Seconds to wait for CONNECTED")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Validate WebSocket URL scheme."""
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("URL must start with ws:// or wss://")
        return v


class HeartbeatSettings(BaseSettings):
    """Heartbeat configuration."""
    model_config = SettingsConfigDict(env_prefix='STOMPWS_HEARTBEAT_')

    outgoing: int = Field(default=10000, ge=0, description="Proposed ping interval in ms (0 disables)")
    incoming: int = Field(default=10000, ge=0, description="Expected server interval in ms (0 disables)")


class ProtocolSettings(BaseSettings):
    """Protocol configuration."""
    model_config = SettingsConfigDict(env_prefix='STOMPWS_PROTOCOL_')

    max_frame_size: int = Field(default=16384, ge=1, description="Largest outbound transport message in bytes")


class LoggingConfig(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(env_prefix='STOMPWS_LOGGING_')

    level: str = Field(default="INFO", description="Log level")
    file: Optional[str] = Field(default=None, description="Log file path")
    max_size: int = Field(default=10485760, description="Max log file size")
    backup_count: int = Field(default=5, description="Number of backup files")
    trace: bool = Field(default=False, description="Log every frame sent and received")
    transport_level: Optional[str] = Field(default=None, description="WebSocket transport log level")

    @field_validator('file')
    @classmethod
    def expand_path(cls, v):
        """Expand user path."""
        return os.path.expanduser(v) if v else v

    @field_validator('level', 'transport_level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        if v is None:
            return v
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class Config(BaseSettings):
    """Main configuration class."""
    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    heartbeat: HeartbeatSettings = Field(default_factory=HeartbeatSettings)
    protocol: ProtocolSettings = Field(default_factory=ProtocolSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix='STOMPWS_',
        env_nested_delimiter='__',
        case_sensitive=False
    )

    @classmethod
    def load_from_file(cls, config_path: Optional[str] = None) -> 'Config':
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to config file (uses default locations if None)

        Returns:
            Loaded configuration
        """
        if config_path:
            config_file = Path(config_path)
            if not config_file.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            possible_paths = [
                Path("stompws.yaml"),
                Path("~/.config/stompws/config.yaml").expanduser(),
                Path("/etc/stompws/config.yaml"),
            ]

            config_file = None
            for path in possible_paths:
                if path.exists():
                    config_file = path
                    break

        if config_file:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f)

            if data:
                config_dict = {}
                for section, values in data.items():
                    if isinstance(values, dict):
                        config_dict[section] = values

                return cls(**config_dict)

        return cls()

    def save_to_file(self, config_path: str):
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        config_dict = {
            'connection': self.connection.model_dump(),
            'heartbeat': self.heartbeat.model_dump(),
            'protocol': self.protocol.model_dump(),
            'logging': self.logging.model_dump()
        }

        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    def client_config(self) -> ClientConfig:
        """Build the client configuration from these settings."""
        return ClientConfig(
            heartbeat=HeartbeatConfig(
                outgoing=self.heartbeat.outgoing,
                incoming=self.heartbeat.incoming
            ),
            max_frame_size=self.protocol.max_frame_size
        )

    def connect_headers(self) -> Dict[str, str]:
        """CONNECT headers for the configured credentials and virtual host."""
        headers = {}
        if self.connection.login is not None:
            headers['login'] = self.connection.login
        if self.connection.passcode is not None:
            headers['passcode'] = self.connection.passcode
        if self.connection.host is not None:
            headers['host'] = self.connection.host
        return headers
