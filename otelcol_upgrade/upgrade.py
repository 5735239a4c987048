"""Bring managed collector instances up to the current collector version."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import semver

from .models import EventRecorder, OpenTelemetryCollector, UpgradeError, UpgradeStrategy
from .steps_early import (
    upgrade_0_9_0,
    upgrade_0_15_0,
    upgrade_0_19_0,
    upgrade_0_24_0,
    upgrade_0_31_0,
)
from .steps_late import (
    upgrade_0_36_0,
    upgrade_0_38_0,
    upgrade_0_39_0,
    upgrade_0_41_0,
    upgrade_0_43_0,
)

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "opentelemetry-operator"

UpgradeFunc = Callable[[EventRecorder, OpenTelemetryCollector], OpenTelemetryCollector]


def _parse_version(text: str) -> semver.Version:
    """Parse a version leniently: a leading 'v' and missing minor/patch are accepted."""
    candidate = text[1:] if text[:1] in ("v", "V") else text
    try:
        return semver.Version.parse(candidate, optional_minor_and_patch=True)
    except (ValueError, TypeError) as exc:
        raise UpgradeError(f"invalid semantic version {text!r}: {exc}") from exc


def upgrade_0_2_10(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """First version under the current image; nothing changes."""
    return otelcol


@dataclass(frozen=True)
class OtelcolVersion:
    """A collector version paired with the step that upgrades an instance to it."""

    version: semver.Version
    upgrade: UpgradeFunc

    def __str__(self) -> str:
        return str(self.version)


VERSIONS: tuple[OtelcolVersion, ...] = tuple(
    OtelcolVersion(semver.Version.parse(text), step)
    for text, step in (
        ("0.2.10", upgrade_0_2_10),
        ("0.9.0", upgrade_0_9_0),
        ("0.15.0", upgrade_0_15_0),
        ("0.19.0", upgrade_0_19_0),
        ("0.24.0", upgrade_0_24_0),
        ("0.31.0", upgrade_0_31_0),
        ("0.36.0", upgrade_0_36_0),
        ("0.38.0", upgrade_0_38_0),
        ("0.39.0", upgrade_0_39_0),
        ("0.41.0", upgrade_0_41_0),
        ("0.43.0", upgrade_0_43_0),
    )
)

# The newest version that has an upgrade step; not necessarily the newest known version.
LATEST = VERSIONS[-1]


class CollectorClient:
    """In-memory store of collector resources, keyed by namespace and name."""

    def __init__(self) -> None:
        self._items: dict[tuple[str, str], OpenTelemetryCollector] = {}

    @staticmethod
    def _key(otelcol: OpenTelemetryCollector) -> tuple[str, str]:
        return (otelcol.namespace, otelcol.name)

    def create(self, otelcol: OpenTelemetryCollector) -> None:
        """Store a new resource; an existing one with the same key is an error."""
        key = self._key(otelcol)
        if key in self._items:
            raise KeyError(f"collector {key[0]}/{key[1]} already exists")
        self._items[key] = otelcol.copy()

    def get(self, namespace: str, name: str) -> OpenTelemetryCollector:
        """Return a copy of the stored resource."""
        try:
            return self._items[(namespace, name)].copy()
        except KeyError:
            raise KeyError(f"collector {namespace}/{name} not found") from None

    def list(self, labels: dict[str, str]) -> list[OpenTelemetryCollector]:
        """Return copies of all resources carrying every given label."""
        return [
            item.copy()
            for item in self._items.values()
            if all(item.labels.get(k) == v for k, v in labels.items())
        ]

    def _stored(self, otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
        key = self._key(otelcol)
        try:
            return self._items[key]
        except KeyError:
            raise KeyError(f"collector {key[0]}/{key[1]} not found") from None

    def patch(self, otelcol: OpenTelemetryCollector) -> None:
        """Update metadata and spec; the stored status is left as it was."""
        stored = self._stored(otelcol)
        updated = otelcol.copy()
        updated.status = stored.status
        self._items[self._key(otelcol)] = updated

    def patch_status(self, otelcol: OpenTelemetryCollector) -> None:
        """Update only the status of the stored resource."""
        stored = self._stored(otelcol)
        stored.status = otelcol.copy().status


@dataclass
class VersionUpgrade:
    """Upgrades collector instances to the given collector version."""

    client: CollectorClient | None = None
    recorder: EventRecorder = field(default_factory=EventRecorder)
    collector_version: str = str(LATEST)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def managed_instances(self) -> None:
        """Find every instance managed by the operator and upgrade it where needed."""
        self.log.info("looking for managed instances to upgrade")
        if self.client is None:
            raise UpgradeError("failed to list: no client configured")
        try:
            items = self.client.list({MANAGED_BY_LABEL: MANAGED_BY_VALUE})
        except Exception as exc:
            raise UpgradeError(f"failed to list: {exc}") from exc

        for original in items:
            where = f"{original.namespace}/{original.name}"
            if original.spec.upgrade_strategy == UpgradeStrategy.NONE:
                self.log.info("skipping instance upgrade due to UpgradeStrategy: %s", where)
                continue
            try:
                upgraded = self.managed_instance(original)
            except UpgradeError:
                continue
            if upgraded == original:
                continue
            try:
                self.client.patch(upgraded)
            except Exception:
                self.log.exception("failed to apply changes to instance %s", where)
                continue
            try:
                self.client.patch_status(upgraded)
            except Exception:
                self.log.exception("failed to apply changes to instance's status object %s", where)
                continue
            self.log.info("instance %s upgraded to version %s", where, upgraded.status.version)

        if not items:
            self.log.info("no instances to upgrade")

    def managed_instance(self, otelcol: OpenTelemetryCollector) -> OpenTelemetryCollector:
        """Return a copy of the instance brought up to the current version."""
        otelcol = otelcol.copy()
        # A missing version means a new instance, which is already up to date.
        if not otelcol.status.version:
            return otelcol

        where = f"{otelcol.namespace}/{otelcol.name}"
        try:
            instance_version = _parse_version(otelcol.status.version)
        except UpgradeError:
            self.log.error(
                "failed to parse version %r for collector instance %s",
                otelcol.status.version,
                where,
            )
            raise

        if instance_version > LATEST.version:
            self.log.info(
                "skipping upgrade for collector instance %s, version %s is newer than %s",
                where,
                otelcol.status.version,
                LATEST,
            )
            return otelcol

        for available in VERSIONS:
            if available.version > instance_version:
                try:
                    upgraded = available.upgrade(self.recorder, otelcol)
                except UpgradeError:
                    self.log.error("failed to upgrade managed collector instance %s", where)
                    raise
                self.log.debug("step upgrade of %s to %s", where, available)
                upgraded.status.version = str(available)
                otelcol = upgraded

        otelcol.status.version = self.collector_version
        self.log.debug("final version of %s is %s", where, otelcol.status.version)
        return otelcol