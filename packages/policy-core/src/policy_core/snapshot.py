"""
Resource snapshots.

A snapshot is everything one reconciliation needs: the gateway resources,
the policies attached to them, and the limiter counters currently
deployed. Snapshots are loaded from YAML (or JSON) files:

    ```yaml
    gateways:
      - name: gw
        listeners:
          - {name: api, hostname: "*.toystore.com"}
    routes:
      - name: toystore
        hostnames: [api.toystore.com]
        parent_refs: [{name: gw}]
        rules:
          - matches:
              - {path: {type: PathPrefix, value: /toy}, method: GET}
    policies:
      - kind: RateLimitPolicy
        name: toystore
        target_ref: {kind: HTTPRoute, name: toystore}
        limits:
          toys:
            rates: [{limit: 50, duration: 1, unit: minute}]
    deployed_limits: []
    ```
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from policy_core.policies import Policy
from policy_core.ratelimit.limits import LimiterCounterDefinition
from policy_core.resources import Gateway, GatewayClass, HTTPRoute


class Snapshot(BaseModel):
    gateway_classes: list[GatewayClass] = Field(
        default_factory=list, description="Gateway classes; derived from gateways if empty"
    )
    gateways: list[Gateway] = Field(default_factory=list, description="Gateways")
    routes: list[HTTPRoute] = Field(default_factory=list, description="HTTP routes")
    policies: list[Policy] = Field(default_factory=list, description="Policies of any kind")
    deployed_limits: list[LimiterCounterDefinition] = Field(
        default_factory=list, description="Limiter counters currently deployed"
    )


def load_snapshot(path: str | Path) -> Snapshot:
    """
    Load a snapshot from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If the content does not match the schema.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return Snapshot.model_validate(data or {})
