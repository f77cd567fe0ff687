"""XCCDF benchmark reader.

One forward pass over a fully buffered document, driven by start/end
events. Where the reader is in the document is tracked as an explicit
state: a sticky base state that only moves forward

    HEADER -> IN_PROFILE -> IN_RULES

plus a stack of pushed states (IN_GROUP, IN_RULE, IN_REFERENCE) popped when
the element that pushed them ends. Header fields are read only in HEADER;
``title`` means the group title in IN_GROUP and the rule title in IN_RULE;
nothing inside a ``reference`` is taken as a rule field except the DPMS
target key.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from stig_checklist.core.constants import Severity
from stig_checklist.core.deps import Deps
from stig_checklist.core.logging import LOG
from stig_checklist.models import Stig, StigCheck, Supplement
from stig_checklist.xml.discussion import parse_discussion
from stig_checklist.xml.sanitizer import San
from stig_checklist.xml.schema import Sch
from stig_checklist.xml.utils import XmlUtils

if TYPE_CHECKING:
    from stig_checklist.processor.resolver import CciResolver


class ParserState(Enum):
    HEADER = "header"
    IN_PROFILE = "profile"
    IN_RULES = "rules"
    IN_GROUP = "group"
    IN_RULE = "rule"
    IN_REFERENCE = "reference"


@dataclass
class ParseResult:
    """Outcome of one document.

    A result without checks means "not a checklist" and must not be
    persisted. ``error`` is set when the XML broke off part way; whatever was
    read before the break is still returned.
    """

    stig: Stig
    checks: List[StigCheck] = field(default_factory=list)
    supplements: List[Supplement] = field(default_factory=list)
    error: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.checks)


class _CheckAccumulator:
    """Check being assembled; ``started`` once a Rule has claimed it."""

    def __init__(self, vuln_num: str = "", group_title: str = ""):
        self.check = StigCheck(vuln_num=vuln_num, group_title=group_title)
        self.started = False


class _ParseContext:
    """Everything one parse call mutates."""

    def __init__(self, stig: Stig):
        self.stig = stig
        self.checks: List[StigCheck] = []
        self.by_rule: Dict[str, StigCheck] = {}
        self.acc: Optional[_CheckAccumulator] = None
        self.base = ParserState.HEADER
        self.stack: List[Tuple[object, ParserState]] = []
        self.error = ""

    @property
    def state(self) -> ParserState:
        return self.stack[-1][1] if self.stack else self.base

    def push(self, elem: object, state: ParserState) -> None:
        self.stack.append((elem, state))

    def pop_if(self, elem: object) -> None:
        if self.stack and self.stack[-1][0] is elem:
            self.stack.pop()

    def begin_group(self, vuln_num: str) -> None:
        if self.acc is not None and self.acc.started:
            self.flush()
        self.acc = _CheckAccumulator(vuln_num)

    def begin_rule(self, rule: str, severity: Severity, weight: float) -> None:
        if self.acc is None:
            self.acc = _CheckAccumulator()
        elif self.acc.started:
            # Second rule in one group shares the group's identity
            previous = self.acc.check
            self.flush()
            self.acc = _CheckAccumulator(previous.vuln_num, previous.group_title)
        self.acc.started = True
        check = self.acc.check
        check.rule = rule
        check.severity = severity
        check.weight = weight

    def flush(self) -> None:
        if self.acc is None or not self.acc.started:
            return
        check = self.acc.check
        self.acc = None

        existing = self.by_rule.get(check.rule)
        if existing is not None:
            LOG.d(f"Coalescing repeated fragment of {check.rule}")
            existing.merge(check)
            return

        if any(c.vuln_num == check.vuln_num for c in self.checks):
            LOG.w(f"Duplicate vulnerability number {check.vuln_num} in {self.stig.file_name} ({check.rule})")
        self.checks.append(check)
        self.by_rule[check.rule] = check


class XccdfParser:
    """Reads one XCCDF benchmark into a Stig header and its checks.

    Args:
        resolver: Resolves CCI tokens to repository ids. Without one, CCI
            references are dropped and only legacy ids are kept.
    """

    def __init__(self, resolver: Optional["CciResolver"] = None):
        self.resolver = resolver

    def parse(
        self,
        data: bytes,
        file_name: str,
        supplements: Optional[Dict[str, bytes]] = None,
    ) -> ParseResult:
        ET, XMLParseError = Deps.get_xml()
        ctx = _ParseContext(Stig(file_name=San.file_name(file_name)))

        try:
            for event, elem in ET.iterparse(io.BytesIO(data), events=("start", "end")):
                if event == "start":
                    self._start(ctx, elem)
                else:
                    ctx.pop_if(elem)
                    self._end(ctx, elem)
        except (XMLParseError, ValueError) as exc:
            # defusedxml refusals derive from ValueError
            ctx.error = str(exc) or exc.__class__.__name__
            LOG.w(f"Malformed XML in {ctx.stig.file_name}: {ctx.error}")

        if ctx.base is ParserState.IN_RULES:
            ctx.flush()

        result = ParseResult(stig=ctx.stig, checks=ctx.checks, error=ctx.error)
        for path, contents in (supplements or {}).items():
            result.supplements.append(Supplement(path=path, contents=contents))

        LOG.d(f"Parsed {ctx.stig.file_name}: {len(result.checks)} check(s)")
        return result

    # ----------------------------------------------------------------- events
    def _start(self, ctx: _ParseContext, elem) -> None:
        tag = Sch.strip_ns(elem.tag)

        if tag == Sch.XCCDF_BENCHMARK:
            if ctx.state is ParserState.HEADER:
                ctx.stig.benchmark_id = elem.get("id", "").strip()
        elif tag == Sch.XCCDF_PROFILE:
            if ctx.base is ParserState.HEADER:
                ctx.base = ParserState.IN_PROFILE
        elif tag == Sch.XCCDF_GROUP:
            ctx.base = ParserState.IN_RULES
            group_id = elem.get("id")
            if group_id:
                ctx.begin_group(San.vuln_num(group_id))
                ctx.push(elem, ParserState.IN_GROUP)
        elif tag == Sch.XCCDF_RULE:
            rule_id, severity, weight = elem.get("id"), elem.get("severity"), elem.get("weight")
            if rule_id and severity is not None and weight is not None:
                ctx.base = ParserState.IN_RULES
                ctx.begin_rule(San.rule_id(rule_id), Severity.parse(severity), self._weight(weight))
                ctx.push(elem, ParserState.IN_RULE)
        elif tag == Sch.XCCDF_REFERENCE:
            ctx.push(elem, ParserState.IN_REFERENCE)
        elif tag == Sch.XCCDF_CHECK_CONTENT_REF:
            if ctx.acc is not None:
                ctx.acc.check.check_content_ref = elem.get("name", "")

    def _end(self, ctx: _ParseContext, elem) -> None:
        tag = Sch.strip_ns(elem.tag)
        state = ctx.state

        if state is ParserState.HEADER:
            self._header_field(ctx.stig, tag, elem)
        elif ctx.base is ParserState.IN_RULES and ctx.acc is not None:
            self._rule_field(ctx, state, tag, elem)

    # ----------------------------------------------------------------- fields
    def _header_field(self, stig: Stig, tag: str, elem) -> None:
        text = XmlUtils.element_text(elem).strip()
        if tag == Sch.XCCDF_TITLE and not stig.title:
            stig.title = text
        elif tag == Sch.XCCDF_DESCRIPTION and not stig.description:
            stig.description = text
        elif tag == Sch.XCCDF_PLAIN_TEXT and elem.get("id") == Sch.RELEASE_INFO_ID and not stig.release:
            stig.release = text
        elif tag == Sch.XCCDF_VERSION and not stig.version:
            try:
                stig.version = int(text)
            except ValueError:
                LOG.d(f"Non-numeric benchmark version: {text!r}")

    def _rule_field(self, ctx: _ParseContext, state: ParserState, tag: str, elem) -> None:
        check = ctx.acc.check

        if tag == Sch.XCCDF_TITLE:
            if state is ParserState.IN_GROUP:
                check.group_title = XmlUtils.element_text(elem).strip()
            elif state is ParserState.IN_RULE:
                check.title = XmlUtils.element_text(elem).strip()
        elif tag == Sch.XCCDF_VERSION:
            if state is ParserState.IN_RULE:
                check.rule_version = XmlUtils.element_text(elem).strip()
        elif tag == Sch.XCCDF_DESCRIPTION:
            if state is ParserState.IN_RULE:
                self._discussion(check, XmlUtils.element_text(elem))
        elif tag == Sch.XCCDF_IDENTIFIER:
            check.target_key = XmlUtils.element_text(elem).strip()
        elif tag == Sch.XCCDF_IDENT:
            self._ident(ctx, check, elem)
        elif tag == Sch.XCCDF_FIXTEXT:
            check.fix = XmlUtils.element_text(elem).strip()
        elif tag == Sch.XCCDF_CHECK_CONTENT:
            check.check = XmlUtils.element_text(elem).strip()

    @staticmethod
    def _discussion(check: StigCheck, raw: str) -> None:
        fields = parse_discussion(raw)
        check.vuln_discussion = fields.get("VulnDiscussion", "")
        check.false_positives = fields.get("FalsePositives", "")
        check.false_negatives = fields.get("FalseNegatives", "")
        check.documentable = fields.get("Documentable", "").strip().lower().startswith("t")
        check.mitigations = fields.get("Mitigations", "")
        check.severity_override_guidance = fields.get("SeverityOverrideGuidance", "")
        check.potential_impact = fields.get("PotentialImpacts", "")
        check.third_party_tools = fields.get("ThirdPartyTools", "")
        check.mitigation_control = fields.get("MitigationControl", "")
        check.responsibility = fields.get("Responsibility", "")

    def _ident(self, ctx: _ParseContext, check: StigCheck, elem) -> None:
        text = XmlUtils.element_text(elem).strip()
        if elem.get("system", "").lower().endswith("legacy"):
            check.add_legacy_id(text)
        elif text.upper().startswith("CCI") and self.resolver is not None:
            cci_id = self.resolver.resolve(text, ctx.stig)
            if cci_id is not None:
                check.add_cci(cci_id)

    @staticmethod
    def _weight(value: str) -> float:
        try:
            return float(value)
        except ValueError:
            LOG.d(f"Unreadable rule weight {value!r}, using 10.0")
            return 10.0
