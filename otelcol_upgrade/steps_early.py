"""Upgrade steps for collector versions 0.9.0 up to 0.31.0."""

from __future__ import annotations

import json
from typing import Any

from .models import EventRecorder, OpenTelemetryCollector, UpgradeError
from .yamlconfig import ConfigError, config_from_string, config_to_string

_NORMAL = "Normal"
_REASON = "Upgrade"


def _quote(value: Any) -> str:
    return json.dumps(str(value))


def _parse(otelcol: OpenTelemetryCollector, version: str) -> dict:
    try:
        return config_from_string(otelcol.spec.config)
    except ConfigError as exc:
        raise UpgradeError(
            f"couldn't upgrade to v{version}, failed to parse configuration: {exc}"
        ) from exc


def _render(otelcol: OpenTelemetryCollector, cfg: dict, version: str) -> None:
    try:
        otelcol.spec.config = config_to_string(cfg)
    except ConfigError as exc:
        raise UpgradeError(
            f"couldn't upgrade to v{version}, failed to marshall back configuration: {exc}"
        ) from exc


def _record(recorder: EventRecorder, otelcol: OpenTelemetryCollector, message: str) -> None:
    recorder.event(otelcol, _NORMAL, _REASON, message)


def upgrade_0_9_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Drop the reconnection_delay property from the opencensus exporter."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _parse(otelcol, "0.9.0")
    exporters = cfg.get("exporters")
    if not isinstance(exporters, dict):
        raise UpgradeError(
            "couldn't upgrade to v0.9.0, failed to extract list of exporters "
            f"from the configuration: {exporters!r}"
        )

    for key, exporter in list(exporters.items()):
        # The exporter name must be a prefix of "opencensus".
        if not "opencensus".startswith(str(key)):
            continue
        if isinstance(exporter, dict):
            exporter.pop("reconnection_delay", None)
            _record(
                recorder,
                otelcol,
                "upgrade to v0.9.0 removed the property reconnection_delay "
                f"for exporter {_quote(key)}",
            )
            exporters[key] = exporter
        elif isinstance(exporter, str):
            continue
        else:
            raise UpgradeError(
                f"couldn't upgrade to v0.9.0, the exporter {_quote(key)} is invalid "
                "(neither a string nor map)"
            )

    cfg["exporters"] = exporters
    _render(otelcol, cfg, "0.9.0")
    return otelcol


def upgrade_0_15_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Drop the deprecated metrics type arguments."""
    otelcol.spec.args.pop("--new-metrics", None)
    otelcol.spec.args.pop("--legacy-metrics", None)
    _record(
        recorder,
        otelcol,
        "upgrade to v0.15.0 dropped the deprecated metrics arguments",
    )
    return otelcol


def _existing_attributes(processor: dict, migrated: list | None, key: Any) -> list:
    """Return the attribute list to extend; only lists built by this step are accepted."""
    if "attributes" not in processor:
        return []
    attrs = processor["attributes"]
    if migrated is not None and attrs is migrated:
        return migrated
    raise UpgradeError(
        "couldn't upgrade to v0.19.0, the attributes list for processors "
        f"{_quote(key)} couldn't be parsed based on the previous value. "
        f"Type: {type(attrs).__name__}, value: {attrs}"
    )


def _migrate_resource_processor(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector, key: Any, processor: dict
) -> None:
    migrated: list | None = None

    if "type" in processor:
        attributes = _existing_attributes(processor, migrated, key)
        attributes.append(
            {"key": "opencensus.type", "value": str(processor["type"]), "action": "upsert"}
        )
        processor["attributes"] = attributes
        migrated = attributes
        del processor["type"]
        _record(
            recorder,
            otelcol,
            f"upgrade to v0.19.0 migrated the property 'type' for processor {_quote(key)}",
        )

    if "labels" in processor:
        attributes = _existing_attributes(processor, migrated, key)
        labels = processor["labels"]
        if isinstance(labels, dict):
            attributes.extend(
                {"key": str(label), "value": str(value), "action": "upsert"}
                for label, value in labels.items()
            )
        processor["attributes"] = attributes
        del processor["labels"]
        _record(
            recorder,
            otelcol,
            f"upgrade to v0.19.0 migrated the property 'labels' for processor {_quote(key)}",
        )


def upgrade_0_19_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Remove queued_retry processors and move resource type/labels into attributes."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _parse(otelcol, "0.19.0")
    processors = cfg.get("processors")
    if not isinstance(processors, dict):
        return otelcol

    for key, processor in list(processors.items()):
        name = str(key)
        if name.startswith("queued_retry"):
            del processors[key]
            _record(
                recorder,
                otelcol,
                f"upgrade to v0.19.0 removed the processor {_quote(key)}",
            )
            continue

        if not name.startswith("resource"):
            continue
        if isinstance(processor, dict):
            _migrate_resource_processor(recorder, otelcol, key, processor)
            processors[key] = processor
        elif isinstance(processor, str):
            continue
        else:
            raise UpgradeError(
                f"couldn't upgrade to v0.19.0, the processor {_quote(key)} is invalid "
                "(neither a string nor map)"
            )

    cfg["processors"] = processors
    _render(otelcol, cfg, "0.19.0")
    return otelcol


def upgrade_0_24_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Turn the health_check extension's port into an endpoint."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _parse(otelcol, "0.24.0")
    extensions = cfg.get("extensions")
    if not isinstance(extensions, dict):
        return otelcol

    for key, extension in extensions.items():
        if not str(key).startswith("health_check"):
            continue
        if extension is None or isinstance(extension, str):
            continue
        if not isinstance(extension, dict):
            raise UpgradeError(
                f"couldn't upgrade to v0.24.0, the extension {_quote(key)} is invalid "
                f"(expected string or map but was {type(extension).__name__})"
            )
        if "port" in extension:
            port = extension.pop("port")
            extension["endpoint"] = f"0.0.0.0:{port}"
            _record(
                recorder,
                otelcol,
                "upgrade to v0.24.0 migrated the property 'port' to 'endpoint' "
                f"for extension {_quote(key)}",
            )

    _render(otelcol, cfg, "0.24.0")
    return otelcol


def upgrade_0_31_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Drop the metrics_schema field from influxdb receivers."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _parse(otelcol, "0.31.0")
    receivers = cfg.get("receivers")
    if not isinstance(receivers, dict):
        return otelcol

    for key, receiver in receivers.items():
        if not str(key).startswith("influxdb"):
            continue
        if not isinstance(receiver, dict):
            return otelcol
        for field_key in list(receiver):
            if str(field_key).startswith("metrics_schema"):
                del receiver[field_key]
                _record(
                    recorder,
                    otelcol,
                    "upgrade to v0.31.0 dropped the 'metrics_schema' field from "
                    f"{_quote(key)} receiver",
                )

    cfg["receivers"] = receivers
    _render(otelcol, cfg, "0.31.0")
    return otelcol