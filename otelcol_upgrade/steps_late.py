"""Upgrade steps for collector versions 0.36.0 up to 0.43.0."""

from __future__ import annotations

from typing import Any

from .models import EventRecorder, OpenTelemetryCollector, UpgradeError
from .yamlconfig import (
    ConfigError,
    config_from_string,
    config_to_string,
    config_to_string_without_nulls,
)

_NORMAL = "Normal"
_REASON = "Upgrade"

_TLS_KEYS = frozenset(
    {
        "ca_file",
        "cert_file",
        "key_file",
        "min_version",
        "max_version",
        "insecure",
        "insecure_skip_verify",
        "server_name_override",
    }
)
_LOGGING_ARGS = ("--log-level", "--log-profile", "--log-format")
_METRICS_ARGS = ("--metrics-addr", "--metrics-level")
_CORS_KEYS = frozenset({"cors_allowed_origins", "cors_allowed_headers"})


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


def _update_config(otelcol: OpenTelemetryCollector, cfg: dict) -> OpenTelemetryCollector:
    """Render the configuration back, dropping null markers left by the parser."""
    try:
        otelcol.spec.config = config_to_string_without_nulls(cfg)
    except ConfigError as exc:
        raise UpgradeError(
            f"couldn't upgrade to v0.39.0, failed to marshall back configuration: {exc}"
        ) from exc
    return otelcol


def _record(recorder: EventRecorder, otelcol: OpenTelemetryCollector, message: str) -> None:
    recorder.event(otelcol, _NORMAL, _REASON, message)


def _ensure_map(parent: dict, key: str) -> dict:
    value = parent.get(key)
    if not isinstance(value, dict):
        value = {}
        parent[key] = value
    return value


def _pop_args(otelcol: OpenTelemetryCollector, names: tuple[str, ...]) -> dict[str, str]:
    return {name: otelcol.spec.args.pop(name) for name in names if name in otelcol.spec.args}


def _format_keys(keys: dict[str, Any]) -> str:
    return "[" + " ".join(sorted(keys)) + "]"


def upgrade_0_36_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Rename tls_settings to tls in otlp receivers and group otlp exporter TLS fields."""
    if not otelcol.spec.config:
        return otelcol

    cfg = _parse(otelcol, "0.36.0")

    receivers = cfg.get("receivers")
    if not isinstance(receivers, dict):
        return otelcol

    for receiver_name, receiver in receivers.items():
        if not str(receiver_name).startswith("otlp"):
            continue
        if not isinstance(receiver, dict):
            return otelcol
        for section_name, section in list(receiver.items()):
            if section_name != "protocols":
                continue
            if not isinstance(section, dict):
                return otelcol
            for protocol, protocol_config in list(section.items()):
                if protocol not in ("grpc", "http"):
                    continue
                if not isinstance(protocol_config, dict):
                    return otelcol
                for field_name, value in list(protocol_config.items()):
                    if str(field_name) != "tls_settings":
                        continue
                    protocol_config["tls"] = value
                    del protocol_config["tls_settings"]
                    _record(
                        recorder,
                        otelcol,
                        "upgrade to v0.36.0 has changed the tls_settings field name to tls "
                        f"in {protocol} protocol of {receiver_name} receiver",
                    )
    cfg["receivers"] = receivers

    exporters = cfg.get("exporters")
    if not isinstance(exporters, dict):
        return otelcol

    for exporter_name, exporter in exporters.items():
        if not str(exporter_name).startswith("otlp"):
            continue
        if not isinstance(exporter, dict):
            return otelcol
        tls_config: dict = {}
        for key, value in list(exporter.items()):
            if key in _TLS_KEYS:
                tls_config[key] = value
                del exporter[key]
            exporter["tls"] = tls_config
            _record(
                recorder,
                otelcol,
                "upgrade to v0.36.0 move tls config i.e. ca_file, key_file, cert_file, "
                f"min_version, max_version to tls.* in {exporter_name} exporter",
            )
    cfg["exporters"] = exporters

    _render(otelcol, cfg, "0.36.0")
    return otelcol


def upgrade_0_38_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Move the deprecated logging arguments into service.telemetry.logs."""
    if not otelcol.spec.args:
        return otelcol

    found = _pop_args(otelcol, _LOGGING_ARGS)
    if not found:
        return otelcol

    cfg = _parse(otelcol, "0.38.0")
    service = _ensure_map(cfg, "service")
    telemetry = _ensure_map(service, "telemetry")
    logs = _ensure_map(telemetry, "logs")

    # Settings already present in the configuration win over the deprecated arguments.
    if not logs:
        if "--log-level" in found:
            logs["level"] = found["--log-level"]
        if "--log-profile" in found:
            logs["development"] = True
        if "--log-format" in found:
            logs["encoding"] = found["--log-format"]
    cfg["service"] = service

    _render(otelcol, cfg, "0.38.0")
    _record(
        recorder,
        otelcol,
        "upgrade to v0.38.0 dropped the deprecated logging arguments "
        f"i.e. {_format_keys(found)} from otelcol custom resource otelcol.spec.args and "
        "adding them to otelcol.spec.config.service.telemetry.logs, if no logging "
        "parameters are configured already.",
    )
    return otelcol


def upgrade_0_39_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Drop memory_limiter's ballast_size_mib and rename httpd receivers to apache."""
    cfg = _parse(otelcol, "0.39.0")

    processors = cfg.get("processors")
    if isinstance(processors, dict):
        for name, processor in processors.items():
            if not str(name).startswith("memory_limiter") or not isinstance(processor, dict):
                continue
            if "ballast_size_mib" in processor:
                del processor["ballast_size_mib"]
                _record(
                    recorder,
                    otelcol,
                    "upgrade to v0.39.0 has dropped the ballast_size_mib field name "
                    f"from {name} processor",
                )

    otelcol = _update_config(otelcol, cfg)

    receivers = cfg.get("receivers")
    if not isinstance(receivers, dict):
        return _update_config(otelcol, cfg)

    for name, receiver in list(receivers.items()):
        if not str(name).startswith("httpd"):
            continue
        receivers[str(name).replace("httpd", "apache", 1)] = receiver
        del receivers[name]

        service = cfg.get("service")
        if not isinstance(service, dict):
            return otelcol
        pipelines = service.get("pipelines")
        if not isinstance(pipelines, dict):
            return otelcol

        for pipeline_name, pipeline in pipelines.items():
            if str(pipeline_name) != "metrics":
                continue
            if not isinstance(pipeline, dict):
                return otelcol
            for key, value in pipeline.items():
                if str(key) != "receivers":
                    continue
                if not isinstance(value, list):
                    return otelcol
                for index, entry in enumerate(value):
                    if isinstance(entry, str) and entry.startswith("httpd"):
                        value[index] = entry.replace("httpd", "apache", 1)
                        _record(
                            recorder,
                            otelcol,
                            "upgrade to v0.39.0 has dropped the ballast_size_mib field name "
                            f"from {value[index]} processor",
                        )

    return _update_config(otelcol, cfg)


def upgrade_0_41_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Move the otlp receiver's cors_* fields into a cors section."""
    cfg = _parse(otelcol, "0.41.0")

    receivers = cfg.get("receivers")
    if isinstance(receivers, dict):
        for name, receiver in receivers.items():
            if not str(name).startswith("otlp") or not isinstance(receiver, dict):
                continue
            created_cors = False
            for key, value in list(receiver.items()):
                if str(key) not in _CORS_KEYS:
                    continue
                if not created_cors:
                    receiver["cors"] = {}
                    created_cors = True
                receiver["cors"][str(key).replace("cors_", "", 1)] = value
                del receiver[key]
                _record(
                    recorder,
                    otelcol,
                    f"upgrade to v0.41.0 has re-structured the {key} inside otlp "
                    "receiver config according to the upstream otlp receiver changes "
                    "in 0.41.0 release.",
                )

    return _update_config(otelcol, cfg)


def upgrade_0_43_0(
    recorder: EventRecorder, otelcol: OpenTelemetryCollector
) -> OpenTelemetryCollector:
    """Move the deprecated metrics arguments into service.telemetry.metrics."""
    if not otelcol.spec.args:
        return otelcol

    found = _pop_args(otelcol, _METRICS_ARGS)
    if not found:
        return otelcol

    cfg = _parse(otelcol, "0.43.0")
    service = _ensure_map(cfg, "service")
    telemetry = _ensure_map(service, "telemetry")
    metrics = _ensure_map(telemetry, "metrics")

    # Settings already present in the configuration win over the deprecated arguments.
    if not metrics:
        if "--metrics-addr" in found:
            metrics["address"] = found["--metrics-addr"]
        if "--metrics-level" in found:
            metrics["level"] = found["--metrics-level"]
    cfg["service"] = service

    _render(otelcol, cfg, "0.43.0")
    _record(
        recorder,
        otelcol,
        "upgrade to v0.43.0 dropped the deprecated metrics arguments "
        f"i.e. {_format_keys(found)} from otelcol custom resource otelcol.spec.args and "
        "adding them to otelcol.spec.config.service.telemetry.metrics, if no metrics "
        "arguments are configured already.",
    )
    return otelcol