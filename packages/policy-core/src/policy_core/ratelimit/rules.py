"""
Proxy filter rules.

A CompiledRule tells the proxy filter when to call the limiter and what to
send. Its conditions are alternatives (any block may match) of
conjunctions (every expression in a block must hold):

    {
      "conditions": [
        {"allOf": [
          {"selector": "request.url_path", "operator": "startswith", "value": "/toy"},
          {"selector": "request.method", "operator": "eq", "value": "GET"}
        ]}
      ],
      "data": [
        {"static": {"key": "limit.toys__1a2b3c4d", "value": "1"}},
        {"selector": {"selector": "auth.identity.username"}}
      ]
    }

Blocks come from the route rule matches; policy predicates are appended to
every block.
"""

from pydantic import BaseModel, ConfigDict, Field

from policy_core.policies import Limit, WhenCondition
from policy_core.resources import PathMatchType, RouteMatch, RouteRule

PATH_SELECTOR = "request.url_path"
METHOD_SELECTOR = "request.method"
HEADER_SELECTOR_PREFIX = "request.headers."

DEFAULT_PATH_VALUE = "/"

PATH_MATCH_OPERATORS: dict[PathMatchType, str] = {
    PathMatchType.EXACT: "eq",
    PathMatchType.PATH_PREFIX: "startswith",
    PathMatchType.REGULAR_EXPRESSION: "matches",
}


class PatternExpression(BaseModel):
    model_config = ConfigDict(frozen=True)

    selector: str = Field(..., description="Request attribute selector")
    operator: str = Field(..., description="Comparison operator")
    value: str = Field(..., description="Value to compare with")


class Condition(BaseModel):
    """Conjunction of pattern expressions."""

    model_config = ConfigDict(populate_by_name=True)

    all_of: list[PatternExpression] = Field(
        default_factory=list, alias="allOf", description="Expressions that must all hold"
    )


class StaticData(BaseModel):
    key: str
    value: str


class SelectorData(BaseModel):
    selector: str
    key: str | None = None
    default: str | None = None


class DataItem(BaseModel):
    """Descriptor entry: either a static key/value or a selected request attribute."""

    static: StaticData | None = None
    selector: SelectorData | None = None


class CompiledRule(BaseModel):
    conditions: list[Condition] = Field(default_factory=list, description="Alternatives")
    data: list[DataItem] = Field(default_factory=list, description="Descriptor entries")


def pattern_expressions_from_match(match: RouteMatch) -> list[PatternExpression]:
    """Path first, then method, then each header."""
    path_type = match.path.type if match.path is not None else None
    path_value = match.path.value if match.path is not None else None
    expressions = [
        PatternExpression(
            selector=PATH_SELECTOR,
            operator=PATH_MATCH_OPERATORS[path_type or PathMatchType.PATH_PREFIX],
            value=path_value or DEFAULT_PATH_VALUE,
        )
    ]
    if match.method:
        expressions.append(
            PatternExpression(selector=METHOD_SELECTOR, operator="eq", value=match.method)
        )
    for header in match.headers:
        expressions.append(
            PatternExpression(
                selector=f"{HEADER_SELECTOR_PREFIX}{header.name.lower()}",
                operator="eq",
                value=header.value,
            )
        )
    return expressions


def pattern_expression_from_when(when: WhenCondition) -> PatternExpression:
    return PatternExpression(selector=when.selector, operator=when.operator.value, value=when.value)


def conditions_from_route_rule(
    rule: RouteRule | None, predicates: list[WhenCondition]
) -> list[Condition]:
    """
    Condition blocks of a route rule with predicates appended to each block.

    With no matches the predicates alone form a single block; with neither
    the rule applies unconditionally (no blocks).
    """
    extra = [pattern_expression_from_when(when) for when in predicates]
    matches = rule.matches if rule is not None else []
    if not matches:
        return [Condition(all_of=extra)] if extra else []
    return [
        Condition(all_of=pattern_expressions_from_match(match) + extra) for match in matches
    ]


def data_from_limit(identifier: str, limit: Limit | None) -> list[DataItem]:
    """Static identifier entry first, then one selector entry per counter."""
    data = [DataItem(static=StaticData(key=identifier, value="1"))]
    if limit is not None:
        data.extend(DataItem(selector=SelectorData(selector=c)) for c in limit.counters)
    return data


def compile_rule(
    identifier: str,
    limit: Limit | None,
    route_rule: RouteRule | None,
    top_level_predicates: list[WhenCondition],
) -> CompiledRule:
    """
    Compile one limit for one route rule.

    Top-level predicates come before the limit's own predicates.
    """
    predicates = list(top_level_predicates)
    if limit is not None:
        predicates.extend(limit.when)
    return CompiledRule(
        conditions=conditions_from_route_rule(route_rule, predicates),
        data=data_from_limit(identifier, limit),
    )
