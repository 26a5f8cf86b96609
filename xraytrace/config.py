import os
from dataclasses import dataclass, field
from typing import Literal, Optional, Union

import yaml

from xraytrace.exceptions import ConfigurationError, ValidationError
from xraytrace.tracing.segment import (
    AWS,
    AWSEC2,
    AWSECS,
    AWSElasticBeanstalk,
    Origin,
)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class AWSResourceConfig:
    """Describes the AWS resource the exporting service runs on."""

    account_id: Optional[str] = None
    ec2_instance_id: Optional[str] = None
    availability_zone: Optional[str] = None
    ecs_container: Optional[str] = None
    beanstalk_environment: Optional[str] = None
    beanstalk_version_label: Optional[str] = None
    beanstalk_deployment_id: Optional[int] = None


@dataclass
class ExporterConfig:
    service_name: str = "DEFAULT"
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    origin: Optional[Union[Origin, str]] = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = (
        "INFO"
    )
    aws: AWSResourceConfig = field(default_factory=AWSResourceConfig)

    def __post_init__(self):
        # value checking
        if not self.service_name:
            raise ConfigurationError("service_name must not be empty")
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}",
                f"Use one of {', '.join(LOG_LEVELS)}",
            )
        # type checking
        if self.origin is not None:
            try:
                self.origin = Origin.parse(self.origin)
            except ValidationError as e:
                raise ConfigurationError(e.message, e.suggestion) from e
        if isinstance(self.aws, dict):
            self.aws = AWSResourceConfig(**self.aws)

    def aws_resource(self) -> AWS:
        """Build the ``aws`` block attached to top-level segments."""
        resource = self.aws
        ec2 = None
        if resource.ec2_instance_id or resource.availability_zone:
            ec2 = AWSEC2(
                availability_zone=resource.availability_zone,
                instance_id=resource.ec2_instance_id,
            )
        ecs = None
        if resource.ecs_container:
            ecs = AWSECS(container=resource.ecs_container)
        beanstalk = None
        if (
            resource.beanstalk_environment
            or resource.beanstalk_version_label
            or resource.beanstalk_deployment_id is not None
        ):
            beanstalk = AWSElasticBeanstalk(
                deployment_id=resource.beanstalk_deployment_id,
                environment_name=resource.beanstalk_environment,
                version_label=resource.beanstalk_version_label,
            )
        return AWS(
            account_id=resource.account_id,
            ec2=ec2,
            ecs=ecs,
            elastic_beanstalk=beanstalk,
        )


def load_config(config_path: Optional[str] = None) -> ExporterConfig:
    config_path = config_path or os.getenv(
        "XRAYTRACE_CONFIG", "config.yaml"
    )
    if not os.path.exists(config_path):
        raise ConfigurationError(
            f"Config file not found: {config_path}",
            "Pass --config-path or set XRAYTRACE_CONFIG",
        )
    with open(config_path) as f:
        try:
            config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in config file {config_path}: {e}"
            ) from e
    if not isinstance(config_data, dict):
        raise ConfigurationError(
            f"Config file must contain a mapping: {config_path}"
        )
    try:
        return ExporterConfig(**config_data)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Error loading config: {e}") from e
