"""Bucket lifecycle (expiration) rule management.

S3 only offers whole-configuration get/put/delete, so every change is a
read-modify-write of the full rule set. Two concurrent writers race and the
last one wins; there is no version token to detect it.
"""

from typing import Any, Optional

from botocore.exceptions import ClientError
from pydantic import BaseModel, ConfigDict, Field

from s3_download.core import get_logger
from s3_download.core.exceptions import ErrorKind, StorageOperationError
from s3_download.objectstorage.clients import S3ClientManager
from s3_download.objectstorage.results import (
    HANDLED_ERRORS,
    OperationResult,
    failure_from_error,
)
from s3_download.objectstorage.retry import check_response, error_code

logger = get_logger(__name__)

NO_LIFECYCLE_CONFIGURATION = "NoSuchLifecycleConfiguration"


class LifecycleRule(BaseModel):
    """An expiration rule applied to objects under a prefix."""

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., min_length=1, description="Rule identifier")
    prefix: str = Field("", description="Key prefix the rule applies to")
    enabled: bool = Field(True, description="Whether the rule is active")
    expiration_days: Optional[int] = Field(
        None, ge=1, description="Days after creation before objects expire"
    )

    def to_s3(self) -> dict[str, Any]:
        """Render the rule in boto3 request form."""
        rule: dict[str, Any] = {
            "ID": self.rule_id,
            "Filter": {"Prefix": self.prefix},
            "Status": "Enabled" if self.enabled else "Disabled",
        }
        if self.expiration_days is not None:
            rule["Expiration"] = {"Days": self.expiration_days}
        return rule

    @classmethod
    def from_s3(cls, rule: dict[str, Any]) -> "LifecycleRule":
        """Build a rule from a boto3 response entry."""
        rule_filter = rule.get("Filter", {})
        prefix = rule_filter.get(
            "Prefix", rule_filter.get("And", {}).get("Prefix", rule.get("Prefix", ""))
        )
        return cls(
            rule_id=rule.get("ID", ""),
            prefix=prefix or "",
            enabled=rule.get("Status") == "Enabled",
            expiration_days=rule.get("Expiration", {}).get("Days"),
        )


class S3LifecycleManager:
    """Get, add, update and remove lifecycle rules on the session's bucket."""

    def __init__(self, client_manager: S3ClientManager):
        self.client_manager = client_manager

    @property
    def bucket(self) -> str:
        return self.client_manager.bucket_name

    def _fetch_rules(self) -> Optional[list[dict[str, Any]]]:
        try:
            response = self.client_manager.client.get_bucket_lifecycle_configuration(
                Bucket=self.bucket
            )
        except ClientError as e:
            if error_code(e) == NO_LIFECYCLE_CONFIGURATION:
                return None
            raise
        check_response(response, "get_bucket_lifecycle_configuration")
        return list(response.get("Rules", []))

    def _put_rules(self, rules: list[dict[str, Any]]) -> None:
        client = self.client_manager.client
        if not rules:
            # S3 rejects an empty rule list, so drop the configuration instead
            response = client.delete_bucket_lifecycle(Bucket=self.bucket)
            check_response(response, "delete_bucket_lifecycle")
            return
        response = client.put_bucket_lifecycle_configuration(
            Bucket=self.bucket, LifecycleConfiguration={"Rules": rules}
        )
        check_response(response, "put_bucket_lifecycle_configuration")
        logger.info(
            "Lifecycle configuration replaced", bucket=self.bucket, rules=len(rules)
        )

    @staticmethod
    def _without_rule(
        rules: list[dict[str, Any]], rule_id: str
    ) -> list[dict[str, Any]]:
        remaining = [r for r in rules if r.get("ID") != rule_id]
        if len(remaining) == len(rules):
            raise StorageOperationError(
                f"Lifecycle rule '{rule_id}' not found", kind=ErrorKind.PERMANENT
            )
        return remaining

    def get_rules(self) -> OperationResult[Optional[list[LifecycleRule]]]:
        """Fetch the bucket's lifecycle rules.

        Returns:
            Result holding the rules, or None when no configuration exists
        """
        try:
            rules = self._fetch_rules()
            if rules is None:
                return OperationResult.success(None)
            return OperationResult.success([LifecycleRule.from_s3(r) for r in rules])
        except HANDLED_ERRORS as e:
            return failure_from_error("get lifecycle rules of", e, self.bucket)

    def add_rule(
        self,
        rule_id: str,
        prefix: str,
        expiration_days: int,
        enabled: bool = True,
    ) -> OperationResult[LifecycleRule]:
        """Add an expiration rule, creating the configuration if there is none."""
        try:
            rule = LifecycleRule(
                rule_id=rule_id,
                prefix=prefix,
                enabled=enabled,
                expiration_days=expiration_days,
            )
            rules = self._fetch_rules() or []
            rules.append(rule.to_s3())
            self._put_rules(rules)
            logger.info("Lifecycle rule added", bucket=self.bucket, rule_id=rule_id)
            return OperationResult.success(rule, key=rule_id)
        except HANDLED_ERRORS as e:
            return failure_from_error("add lifecycle rule", e, rule_id)

    def update_rule(
        self,
        rule_id: str,
        prefix: str,
        expiration_days: int,
        enabled: bool = True,
    ) -> OperationResult[LifecycleRule]:
        """Replace an existing rule with the same identifier.

        Unlike add_rule this never creates a configuration: it fails when the
        bucket has no rules or none with ``rule_id``.
        """
        try:
            rule = LifecycleRule(
                rule_id=rule_id,
                prefix=prefix,
                enabled=enabled,
                expiration_days=expiration_days,
            )
            rules = self._fetch_rules()
            if rules is None:
                raise StorageOperationError(
                    f"Bucket '{self.bucket}' has no lifecycle configuration",
                    kind=ErrorKind.PERMANENT,
                )
            rules = self._without_rule(rules, rule_id)
            rules.append(rule.to_s3())
            self._put_rules(rules)
            logger.info("Lifecycle rule updated", bucket=self.bucket, rule_id=rule_id)
            return OperationResult.success(rule, key=rule_id)
        except HANDLED_ERRORS as e:
            return failure_from_error("update lifecycle rule", e, rule_id)

    def remove_rule(self, rule_id: str) -> OperationResult[str]:
        """Remove a rule. A bucket without a configuration is left alone."""
        try:
            rules = self._fetch_rules()
            if rules is not None:
                self._put_rules(self._without_rule(rules, rule_id))
                logger.info(
                    "Lifecycle rule removed", bucket=self.bucket, rule_id=rule_id
                )
            return OperationResult.success(rule_id, key=rule_id)
        except HANDLED_ERRORS as e:
            return failure_from_error("remove lifecycle rule", e, rule_id)

    def replace_rules(self, rules: list[LifecycleRule]) -> OperationResult[int]:
        """Replace the whole rule set with ``rules``."""
        try:
            self._put_rules([rule.to_s3() for rule in rules])
            return OperationResult.success(len(rules))
        except HANDLED_ERRORS as e:
            return failure_from_error("replace lifecycle rules of", e, self.bucket)

    def delete_configuration(self) -> OperationResult[str]:
        """Delete the bucket's lifecycle configuration."""
        try:
            self._put_rules([])
            logger.info("Lifecycle configuration deleted", bucket=self.bucket)
            return OperationResult.success(self.bucket)
        except HANDLED_ERRORS as e:
            return failure_from_error(
                "delete lifecycle configuration of", e, self.bucket
            )
