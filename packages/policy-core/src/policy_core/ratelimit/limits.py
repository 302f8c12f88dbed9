"""
Limiter counter definitions.

Each rate of a limit becomes one counter definition in the limiter
service. The counter is active only for requests whose descriptor carries
the limit identifier, and is qualified by the limit's counter selectors.

With the indexed counter format (default), conditions and variables read
the first descriptor sent by the proxy filter:

    conditions: ['descriptors[0]["limit.orders__..."] == "1"']
    variables:  ['descriptors[0]["auth.identity.username"]']

The plain format uses raw identifiers and selectors instead.
"""

from pydantic import BaseModel, Field

from policy_core.config import CounterFormat
from policy_core.policies import Limit
from policy_core.ratelimit.rates import rate_to_seconds


class LimiterCounterDefinition(BaseModel):
    """
    Counter definition deployed to the limiter service.

    Attributes:
        namespace: Limiter namespace ("<ns>/<route>[#<domain>]")
        max_value: Hits allowed per window
        seconds: Window length
        conditions: Expressions that activate the counter
        variables: Expressions qualifying the counter
    """

    namespace: str = Field(..., description="Limiter namespace")
    max_value: int = Field(..., ge=0, description="Hits allowed per window")
    seconds: int = Field(..., ge=0, description="Window length in seconds")
    conditions: list[str] | None = Field(default=None, description="Activation conditions")
    variables: list[str] | None = Field(default=None, description="Counter qualifiers")


def activation_condition(identifier: str, counter_format: CounterFormat) -> str:
    if counter_format is CounterFormat.PLAIN:
        return f'{identifier} == "1"'
    return f'descriptors[0]["{identifier}"] == "1"'


def counter_variable(selector: str, counter_format: CounterFormat) -> str:
    if counter_format is CounterFormat.PLAIN:
        return selector
    return f'descriptors[0]["{selector}"]'


def counter_definitions(
    namespace: str,
    identifier: str,
    limit: Limit | None,
    counter_format: CounterFormat = CounterFormat.INDEXED,
) -> list[LimiterCounterDefinition]:
    """
    Counter definitions of a limit, one per rate.

    A missing limit or an empty rate list yields no definitions.
    """
    if limit is None or not limit.rates:
        return []

    conditions = [activation_condition(identifier, counter_format)]
    variables = [counter_variable(counter, counter_format) for counter in limit.counters]

    definitions = []
    for rate in limit.rates:
        max_value, seconds = rate_to_seconds(rate)
        definitions.append(
            LimiterCounterDefinition(
                namespace=namespace,
                max_value=max_value,
                seconds=seconds,
                conditions=list(conditions),
                variables=list(variables),
            )
        )
    return definitions
