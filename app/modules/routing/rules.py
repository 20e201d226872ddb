"""Routing rule store: templates, defaults, CRUD and validation."""
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Iterable

from app.core.base import utcnow
from app.modules.routing.schemas import (
    RoutingAction, RoutingCondition, RoutingFeedback, RoutingRule, RuleTemplate, RuleValidation,
)
from app.platform.ports.routing import FeedbackSinkPort, RuleSourcePort

log = logging.getLogger("routing.rules")

# Fields owned by the store; callers cannot set them through overrides
MANAGED_FIELDS = frozenset({"id", "feedback", "created_at", "updated_at"})

def _cond(field: str, operator: str, value: str | list[str]) -> RoutingCondition:
    return RoutingCondition(field=field, operator=operator, value=value)

# Pre-configured templates for common studio support scenarios
RULE_TEMPLATES: dict[str, RuleTemplate] = {
    "high_priority_escalation": RuleTemplate(
        id="tpl-high-priority",
        name="High Priority Escalation",
        description="Route critical/high priority tickets to senior support team",
        conditions=[_cond("priority", "in", ["critical", "high"])],
        action=RoutingAction(type="assignTeam", target_id="team-senior-support"),
    ),
    "billing_issues": RuleTemplate(
        id="tpl-billing",
        name="Billing Issues",
        description="Route billing inquiries to accounting team",
        conditions=[_cond("category", "equals", "billing")],
        action=RoutingAction(type="assignTeam", target_id="team-accounting"),
    ),
    "technical_support": RuleTemplate(
        id="tpl-technical",
        name="Technical Support",
        description="Route technical issues to engineering team",
        conditions=[_cond("category", "in", ["technical", "bug-report"])],
        action=RoutingAction(type="assignTeam", target_id="team-engineering"),
    ),
    "emergency_incident": RuleTemplate(
        id="tpl-emergency",
        name="Emergency Incident Detection",
        description="Route crisis/emergency situations immediately",
        conditions=[_cond("keywords", "contains", ["emergency", "urgent", "critical", "down"])],
        action=RoutingAction(type="assignTeam", target_id="team-crisis-management"),
    ),
    "general_inquiry": RuleTemplate(
        id="tpl-general",
        name="General Inquiry Load Balancing",
        description="Distribute general inquiries using round-robin",
        conditions=[_cond("category", "equals", "general-inquiry")],
        action=RoutingAction(type="autoAssign"),
    ),
}

def _new_rule_id() -> str:
    return f"rule-{uuid.uuid4().hex[:12]}"

def find_template(template_id: str) -> RuleTemplate | None:
    """Look a template up by catalog key or by its own id."""
    tpl = RULE_TEMPLATES.get(template_id)
    if tpl is not None:
        return tpl
    return next((t for t in RULE_TEMPLATES.values() if t.id == template_id), None)

def get_default_rules(now: datetime | None = None) -> list[RoutingRule]:
    """Rule set for a fresh installation.

    The last rule has no conditions, so it matches any ticket that reaches it
    and acts as the catch-all.
    """
    ts = now or utcnow()
    return [
        RoutingRule(
            id="rule-critical-priority",
            name="Critical Priority Auto-Escalate",
            priority=100,
            conditions=[_cond("priority", "equals", "critical")],
            action=RoutingAction(type="assignTeam", target_id="team-senior-support"),
            created_at=ts,
            updated_at=ts,
        ),
        RoutingRule(
            id="rule-high-priority",
            name="High Priority Routing",
            priority=90,
            conditions=[_cond("priority", "equals", "high")],
            action=RoutingAction(type="assignTeam", target_id="team-support"),
            created_at=ts,
            updated_at=ts,
        ),
        RoutingRule(
            id="rule-default",
            name="Default Load Balancing",
            priority=1,
            conditions=[],
            action=RoutingAction(type="autoAssign"),
            created_at=ts,
            updated_at=ts,
        ),
    ]

class RulesManager(RuleSourcePort, FeedbackSinkPort):
    """Canonical in-process store of routing rules.

    Stored rules are never mutated in place; every change swaps in a new
    model, so snapshots handed to the routing engine stay consistent.
    """

    def __init__(self, rules: Iterable[RoutingRule] = (), now: Callable[[], datetime] = utcnow):
        self._now = now
        self._rules: dict[str, RoutingRule] = {}
        self.load(rules)

    def load(self, rules: Iterable[RoutingRule]) -> None:
        for rule in rules:
            self._rules[rule.id] = rule

    def install_defaults(self) -> list[RoutingRule]:
        defaults = get_default_rules(self._now())
        self.load(defaults)
        return defaults

    def list_templates(self) -> dict[str, RuleTemplate]:
        return dict(RULE_TEMPLATES)

    # ---- CRUD ----
    def create_rule_from_template(self, template_id: str, overrides: dict[str, Any] | None = None) -> RoutingRule | None:
        template = find_template(template_id)
        if template is None:
            return None

        now = self._now()
        data: dict[str, Any] = {
            "id": _new_rule_id(),
            "name": template.name,
            "priority": 50,
            "is_active": True,
            "conditions": [c.model_dump() for c in template.conditions],
            "action": template.action.model_dump(),
            "feedback": [],
            "created_at": now,
            "updated_at": now,
        }
        data.update({k: v for k, v in (overrides or {}).items() if k not in MANAGED_FIELDS})
        rule = RoutingRule.model_validate(data)
        self._rules[rule.id] = rule
        return rule

    def create_custom_rule(
        self,
        name: str,
        conditions: list[RoutingCondition],
        action: RoutingAction,
        priority: int = 50,
    ) -> RoutingRule:
        now = self._now()
        rule = RoutingRule(
            id=_new_rule_id(),
            name=name,
            priority=priority,
            is_active=True,
            conditions=list(conditions),
            action=action,
            feedback=[],
            created_at=now,
            updated_at=now,
        )
        self._rules[rule.id] = rule
        return rule

    def update_rule(self, rule_id: str, updates: dict[str, Any]) -> RoutingRule | None:
        rule = self._rules.get(rule_id)
        if rule is None:
            return None

        data = rule.model_dump()
        data.update({k: v for k, v in updates.items() if k not in MANAGED_FIELDS})
        data["updated_at"] = self._now()
        updated = RoutingRule.model_validate(data)
        self._rules[rule_id] = updated
        return updated

    def delete_rule(self, rule_id: str) -> bool:
        return self._rules.pop(rule_id, None) is not None

    def get_rule(self, rule_id: str) -> RoutingRule | None:
        return self._rules.get(rule_id)

    def get_all_rules(self, active_only: bool = True) -> list[RoutingRule]:
        rules = list(self._rules.values())
        if active_only:
            rules = [r for r in rules if r.is_active]
        return sorted(rules, key=lambda r: r.priority, reverse=True)

    def validate_rule(self, rule: RoutingRule) -> RuleValidation:
        errors: list[str] = []

        if not rule.name or not rule.name.strip():
            errors.append("Rule name is required")
        if not rule.conditions:
            errors.append("At least one condition is required")
        if rule.action is None or not rule.action.type:
            errors.append("Action is required")
        if rule.priority < 0 or rule.priority > 100:
            errors.append("Priority must be between 0 and 100")

        return RuleValidation(valid=not errors, errors=errors)

    # ---- Ports used by the routing engine ----
    async def load_active_rules(self) -> list[RoutingRule]:
        return self.get_all_rules(active_only=True)

    async def append_feedback(self, feedback: RoutingFeedback) -> RoutingFeedback | None:
        rule = self._rules.get(feedback.rule_id)
        if rule is None:
            return None
        self._rules[rule.id] = rule.model_copy(update={"feedback": [*rule.feedback, feedback]})
        return feedback

    def __len__(self) -> int:
        return len(self._rules)
