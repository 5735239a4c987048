"""Volumes and volume claim templates for a collector instance."""

from __future__ import annotations

from .models import OpenTelemetryCollector, PersistentVolumeClaim, Volume

CONFIG_MAP_VOLUME_NAME = "otc-internal"
STATEFULSET_MODE = "statefulset"


def volumes(
    otelcol: OpenTelemetryCollector, config_map_name: str, config_map_entry: str
) -> list[Volume]:
    """Build the volumes for the instance, the config map volume first."""
    config_volume = Volume(
        name=CONFIG_MAP_VOLUME_NAME,
        config_map=config_map_name,
        items=((config_map_entry, config_map_entry),),
    )
    return [config_volume, *otelcol.spec.volumes]


def volume_claim_templates(otelcol: OpenTelemetryCollector) -> list[PersistentVolumeClaim]:
    """Build the claim templates; only stateful sets have any."""
    if otelcol.spec.mode != STATEFULSET_MODE:
        return []
    if otelcol.spec.volume_claim_templates:
        return list(otelcol.spec.volume_claim_templates)
    return [
        PersistentVolumeClaim(
            name="default-volume",
            access_modes=["ReadWriteOnce"],
            requests={"storage": "50Mi"},
        )
    ]