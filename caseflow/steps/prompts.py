"""Prompt text and artifact naming for the generation-backed steps."""

from __future__ import annotations

from textwrap import dedent
from typing import Iterable, Optional

from ..collaborators.base import DocumentAnalysis

SYNTHESIS_BASE = dedent(
    """\
    You are a legal document analyst. Based on the following document analyses, provide a structured synthesis.
    Be concise, professional, and actionable. Use bullet points where appropriate.

    """
)

SYNTHESIS_INSTRUCTIONS = {
    "evidence_checklist": """\
Create an EVIDENCE CHECKLIST for litigation preparation:
1. List all pieces of evidence mentioned or implied
2. Categorize by type (documentary, testimonial, physical)
3. Note collection status (obtained, needed, pending)
4. Highlight critical evidence items
5. Identify potential gaps in evidence

Format as a structured checklist.
""",
    "risk_matrix": """\
Create a RISK ASSESSMENT MATRIX:
1. Identify all risks mentioned across documents
2. Categorize by type (legal, financial, operational, reputational)
3. Rate each risk: Likelihood (High/Medium/Low) x Impact (High/Medium/Low)
4. Suggest mitigation strategies for high-priority risks
5. Provide overall risk score

Format as a structured matrix.
""",
    "negotiation_priorities": """\
Create NEGOTIATION PRIORITIES analysis:
1. Identify key terms and conditions across documents
2. Highlight favorable vs unfavorable terms
3. Rank negotiation priorities (must-have, nice-to-have, acceptable trade-offs)
4. Suggest negotiation strategies
5. Identify potential deal-breakers

Format as prioritized recommendations.
""",
    "deadline_summary": """\
Create a DEADLINE AND TIMELINE SUMMARY:
1. Extract all dates, deadlines, and time-sensitive items
2. Organize chronologically
3. Highlight critical deadlines (court dates, filing deadlines, response requirements)
4. Calculate days remaining for upcoming deadlines
5. Flag any potential conflicts or overlaps

Format as a timeline with urgency indicators.
""",
}

SYNTHESIS_DEFAULT = """\
Provide a COMPREHENSIVE SUMMARY:
1. Key points from each document
2. Common themes and patterns
3. Critical issues identified
4. Recommended next steps
5. Areas requiring immediate attention

Format as an executive summary.
"""

GENERATION_BASE = dedent(
    """\
    You are an expert legal document drafter. Based on the following document analyses,
    generate high-quality legal content. Be thorough, professional, and cite relevant details.

    """
)

GENERATION_INSTRUCTIONS = {
    "answer_draft": """\
Draft an ANSWER to the complaint:
1. Use proper legal formatting with numbered paragraphs
2. Admit, deny, or state insufficient knowledge for each allegation
3. Include all applicable affirmative defenses
4. Add any counterclaims if appropriate
5. Include proper signature block and certificate of service placeholders

Generate a complete, filing-ready draft.
""",
    "opposition_brief": """\
Draft an OPPOSITION BRIEF:
1. Include proper caption and procedural posture
2. State the standard of review
3. Present factual background
4. Develop legal arguments with case citations
5. Include conclusion and requested relief

Generate a complete opposition brief.
""",
    "due_diligence_report": """\
Generate a DUE DILIGENCE REPORT:
1. Executive Summary
2. Scope of Review and Methodology
3. Key Findings by Category (Corporate, Contracts, Litigation, IP, Employment, etc.)
4. Risk Assessment with severity ratings
5. Recommendations and Next Steps
6. Appendix of documents reviewed

Generate a comprehensive DD report.
""",
    "contract_redlines": """\
Generate CONTRACT REDLINES with suggested modifications:
1. Identify problematic clauses
2. Propose alternative language (in redline format)
3. Explain rationale for each change
4. Flag non-negotiable vs. negotiable changes
5. Prioritize changes by importance

Format with clear before/after comparisons.
""",
    "discovery_responses": """\
Draft DISCOVERY RESPONSES:
1. Use proper formatting for interrogatories/document requests
2. Include appropriate objections where warranted
3. Provide substantive responses
4. Include document production lists
5. Add privilege log entries if needed

Generate response drafts for each discovery item.
""",
}

GENERATION_DEFAULT = """\
Generate a comprehensive LEGAL REPORT:
1. Executive summary
2. Background and context
3. Analysis and findings
4. Risk assessment
5. Recommendations
6. Conclusion

Be thorough and professional.
"""

RESEARCH_BASE = dedent(
    """\
    You are an expert legal research assistant. Based on the provided document analyses,
    conduct comprehensive legal research to support the case. Provide actionable insights
    with specific legal references where applicable.

    """
)

RESEARCH_TASKS = """\
Perform the following research tasks:

1. **Case Law Analysis**
   - Identify relevant precedents and controlling authority
   - Note distinguishing factors and potential weaknesses
   - Cite specific cases with proper citations

2. **Statutory Framework**
   - Identify applicable statutes and regulations
   - Note relevant amendments or pending changes
   - Include regulatory guidance if applicable

3. **Legal Issues Identified**
   - List primary legal issues from the documents
   - Analyze strengths and weaknesses of each position
   - Identify potential arguments and counter-arguments

4. **Strategic Recommendations**
   - Provide specific actionable recommendations
   - Prioritize by importance and urgency
   - Note any time-sensitive considerations

5. **Research Gaps**
   - Identify areas requiring additional research
   - Note missing information that would strengthen analysis
   - Suggest follow-up research tasks

Format your response with clear headings and bullet points for easy reference.
Be thorough but concise - focus on actionable intelligence for legal strategy.

"""

SYNTHESIS_NAME_PREFIXES = {
    "evidence_checklist": "Evidence Checklist",
    "risk_matrix": "Risk Matrix",
    "issue_summary": "Issue Summary",
    "contract_summary": "Contract Summary",
}

DRAFT_NAME_PREFIXES = {
    "answer_draft": "Draft Answer",
    "opposition_brief": "Opposition Brief",
    "due_diligence_report": "DD Report",
    "contract_redlines": "Contract Redlines",
    "discovery_responses": "Discovery Responses",
}


def _block(analysis: DocumentAnalysis, *lines: tuple[str, Optional[str]]) -> str:
    out = [f"--- Document: {analysis.file_name or 'Unknown'} ---"]
    out.extend(f"{label}: {value or ''}" for label, value in lines)
    return "\n".join(out) + "\n\n"


def synthesis_context(analyses: Iterable[DocumentAnalysis]) -> str:
    parts = ["Documents analyzed:\n\n"]
    for a in analyses:
        parts.append(
            _block(
                a,
                ("Type", a.detected_type),
                ("Summary", a.summary),
                ("Key Findings", a.key_findings),
                ("Risk Level", a.risk_level),
            )
        )
    return "".join(parts)


def generation_context(analyses: Iterable[DocumentAnalysis]) -> str:
    return "".join(
        _block(
            a,
            ("Type", a.detected_type),
            ("Summary", a.summary),
            ("Key Findings", a.key_findings),
            ("Full Analysis", a.full_text),
        )
        for a in analyses
    )


def research_context(analyses: Iterable[DocumentAnalysis]) -> str:
    parts = ["Based on the following documents, perform comprehensive legal research:\n\n"]
    for a in analyses:
        parts.append(
            _block(
                a,
                ("Type", a.detected_type),
                ("Summary", a.summary),
                ("Key Findings", a.key_findings),
            )
        )
    return "".join(parts)


def synthesis_prompt(synthesis_type: str, context: str) -> str:
    instruction = SYNTHESIS_INSTRUCTIONS.get(synthesis_type, SYNTHESIS_DEFAULT)
    return f"{SYNTHESIS_BASE}{instruction}\n\nDOCUMENT ANALYSES:\n{context}"


def generation_prompt(generation_type: str, context: str) -> str:
    instruction = GENERATION_INSTRUCTIONS.get(generation_type, GENERATION_DEFAULT)
    return f"{GENERATION_BASE}{instruction}\n\nDOCUMENT ANALYSES:\n{context}"


def research_prompt(context: str, research_query: str = "") -> str:
    focus = f"\n\nSPECIFIC RESEARCH FOCUS: {research_query}\n" if research_query else ""
    return f"{RESEARCH_BASE}{RESEARCH_TASKS}{focus}\n\nDOCUMENT ANALYSES:\n{context}"


def _artifact_name(prefix: str, execution_name: Optional[str]) -> str:
    return f"{prefix} - {execution_name or 'Workflow'}"


def synthesis_artifact_name(synthesis_type: str, execution_name: Optional[str]) -> str:
    return _artifact_name(SYNTHESIS_NAME_PREFIXES.get(synthesis_type, "Synthesis"), execution_name)


def draft_artifact_name(generation_type: str, execution_name: Optional[str]) -> str:
    return _artifact_name(DRAFT_NAME_PREFIXES.get(generation_type, "Draft"), execution_name)


def research_artifact_name(execution_name: Optional[str]) -> str:
    return _artifact_name("Research", execution_name)
