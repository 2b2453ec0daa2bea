import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TypedDict

import pandas as pd
from dotenv import load_dotenv
from langgraph.graph import StateGraph, END

from app.models.engine import RequirementSet, ScoreResult
from app.services.matching import analyze_resume, categorize
from app.utils.logging_config import get_logger

load_dotenv()
logger = get_logger(__name__)

REPORT_COLUMNS = [
    "application_id", "candidate_name", "recommendation", "overall_score", "skills_match",
    "experience_match", "education_match", "keyword_match", "confidence",
]


def report_dir_from_env() -> Optional[str]:
    return os.getenv("SCREENING_REPORT_DIR") or None


def application_text(application: Dict[str, Any]) -> str:
    """Resume-like text assembled from a stored application's candidate data"""
    candidate = application.get("candidate") or {}
    parts = [candidate.get("summary") or ""]
    for exp in candidate.get("experience") or []:
        line = f"{exp.get('position', '')} at {exp.get('company', '')}: {exp.get('description', '')}".strip()
        if exp.get("duration"):
            line += f" ({exp['duration']})"
        parts.append(line)
    for edu in candidate.get("education") or []:
        parts.append(" ".join(str(edu.get(k)) for k in ("degree", "field", "institution", "year") if edu.get(k)))
    skills = [s.get("name", "") for s in candidate.get("skills") or [] if s.get("name")]
    if skills:
        parts.append("Skills: " + ", ".join(skills))
    return ".\n".join(p.strip().rstrip(".") for p in parts if p and p.strip())


def candidate_name(application: Dict[str, Any]) -> str:
    candidate = application.get("candidate") or {}
    return candidate.get("full_name") or " ".join(
        n for n in (candidate.get("first_name"), candidate.get("last_name")) if n
    ) or application.get("application_id", "")


def write_reports(job_id: str, ranking: pd.DataFrame, report_dir: str, job_title: str = "") -> Tuple[str, str]:
    Path(report_dir).mkdir(parents=True, exist_ok=True)

    csv_path = os.path.join(report_dir, f"{job_id}_screening.csv")
    ranking.to_csv(csv_path, index=False)

    md_lines = [f"# Screening report: {job_title or job_id}"]
    if len(ranking):
        md_lines += [
            "| Rank | Application | Candidate | Recommendation | Score | Skills | Experience | Education | Keywords |",
            "|---:|---|---|---|---:|---:|---:|---:|---:|",
        ]
        for i, r in enumerate(ranking.head(10).itertuples(), start=1):
            md_lines.append(
                f"| {i} | {r.application_id} | {r.candidate_name} | {r.recommendation} | {r.overall_score} | "
                f"{r.skills_match:.2f} | {r.experience_match:.2f} | {r.education_match:.2f} | {r.keyword_match:.2f} |"
            )
    else:
        md_lines.append("> No applications were screened.\n")

    md_path = os.path.join(report_dir, f"{job_id}_screening.md")
    Path(md_path).write_text("\n".join(md_lines), encoding="utf-8")
    return csv_path, md_path


# LangGraph state and nodes
class ScreeningState(TypedDict, total=False):
    job_id: str
    job_title: str
    requirements: RequirementSet
    applications: List[Dict[str, Any]]
    report_dir: Optional[str]
    texts: Dict[str, str]
    results: Dict[str, ScoreResult]
    failures: Dict[str, str]
    decisions: Dict[str, str]
    ranking: List[Dict[str, Any]]
    report_paths: List[str]


def node_prepare(state: ScreeningState):
    texts = {a["application_id"]: application_text(a) for a in state.get("applications", [])}
    return {"texts": texts}


def node_score(state: ScreeningState):
    requirements = state["requirements"]
    results, failures = {}, {}
    for application_id, text in state.get("texts", {}).items():
        try:
            results[application_id] = analyze_resume(text, requirements)
        except Exception as e:
            logger.exception(f"Screening failed for application {application_id}: {e}")
            failures[application_id] = "Screening failed"
    return {"results": results, "failures": failures}


def node_categorize(state: ScreeningState):
    minimum = state["requirements"].minimum_score
    decisions = {aid: categorize(r, minimum) for aid, r in state.get("results", {}).items()}
    decisions.update({aid: "manual_review" for aid in state.get("failures", {})})
    return {"decisions": decisions}


def node_report(state: ScreeningState):
    names = {a["application_id"]: candidate_name(a) for a in state.get("applications", [])}
    rows = [{
        "application_id": aid,
        "candidate_name": names.get(aid, ""),
        "recommendation": state["decisions"][aid],
        "overall_score": r.overall_score,
        "skills_match": round(r.skills_match, 4),
        "experience_match": round(r.experience_match, 4),
        "education_match": round(r.education_match, 4),
        "keyword_match": round(r.keyword_match, 4),
        "confidence": r.confidence,
    } for aid, r in state.get("results", {}).items()]

    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    if len(df):
        df = df.sort_values(["overall_score", "confidence"], ascending=False, kind="stable").reset_index(drop=True)

    report_paths = []
    if state.get("report_dir"):
        report_paths = list(write_reports(state["job_id"], df, state["report_dir"], state.get("job_title", "")))
    ranking = [{k: (v.item() if hasattr(v, "item") else v) for k, v in row.items()} for row in df.to_dict(orient="records")]
    return {"ranking": ranking, "report_paths": report_paths}


@lru_cache(maxsize=1)
def build_graph():
    g = StateGraph(ScreeningState)
    g.add_node("prepare", node_prepare)
    g.add_node("score", node_score)
    g.add_node("categorize", node_categorize)
    g.add_node("report", node_report)
    g.set_entry_point("prepare")
    g.add_edge("prepare", "score")
    g.add_edge("score", "categorize")
    g.add_edge("categorize", "report")
    g.add_edge("report", END)
    return g.compile()


def run_screening(job_id: str, requirements: RequirementSet, applications: List[Dict[str, Any]],
                  job_title: str = "", report_dir: Optional[str] = None) -> ScreeningState:
    logger.info(f"Screening {len(applications)} applications for job {job_id}")
    return build_graph().invoke({
        "job_id": job_id,
        "job_title": job_title,
        "requirements": requirements,
        "applications": applications,
        "report_dir": report_dir,
    })
