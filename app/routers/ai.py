from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.helpers.parsing import extract_upload_text
from app.models.engine import CallerContext, ExtractedSkill, RequirementSet
from app.models.schemas import (
    PerformanceRequest, ScreenApplicationsRequest, ScreeningOutcome, SentimentRequest, SkillGapRequest,
)
from app.routers.deps import get_caller, has_permission, require_permission, run_blocking
from app.services.catalog import get_catalog, get_settings
from app.services.db import (
    find_similar_jobs, get_applications, get_employee, get_job_posting,
    save_application_analysis, save_employee_insights,
)
from app.services.graph import candidate_name, report_dir_from_env, run_screening
from app.services.matching import (
    aggregate_role_requirements, analyze_resume, analyze_skill_gaps, categorize, requirement_set_from_job,
)
from app.services.notifier import manager
from app.services.performance import employee_performance_data, predict_performance
from app.services.sentiment import analyze_sentiment
from app.utils.exceptions import AuthorizationError, HRInsightsError, NotFoundError
from app.utils.logging_config import get_logger, PerformanceMonitor
from app.utils.utils import llm_available

router = APIRouter()
logger = get_logger(__name__)


async def _job_or_404(job_id: str) -> Dict[str, Any]:
    job = await get_job_posting(job_id)
    if not job:
        raise NotFoundError("Job posting not found", resource="job_posting", resource_id=job_id)
    return job


async def _employee_or_404(employee_id: str) -> Dict[str, Any]:
    employee = await get_employee(employee_id)
    if not employee:
        raise NotFoundError("Employee not found", resource="employee", resource_id=employee_id)
    return employee


def _ensure_self_or_permitted(caller: CallerContext, employee_id: str) -> None:
    if caller.user_id != employee_id and not has_permission(caller, "use_ai_features"):
        raise AuthorizationError("Access denied to this employee's insights", resource=employee_id)


@router.post("/analyze-resume")
async def analyze_resume_upload(
    resume: UploadFile = File(...),
    job_id: str = Form(...),
    caller: CallerContext = Depends(require_permission("use_ai_features")),
):
    """Score an uploaded resume against a stored job posting"""
    data = await resume.read()
    text = await run_blocking(extract_upload_text, resume.filename, resume.content_type, data)

    job = await _job_or_404(job_id)
    requirements = requirement_set_from_job(job)

    with PerformanceMonitor(f"analyze_resume job={job_id}", logger):
        result = await run_blocking(analyze_resume, text, requirements)

    logger.info(f"Resume '{resume.filename}' scored {result.overall_score} for job {job_id} by {caller.user_id}")
    return {
        "success": True,
        "data": {
            "job_id": job_id,
            "filename": resume.filename,
            "analysis": result,
            "recommendation": categorize(result, requirements.minimum_score),
        },
    }


@router.post("/screen-applications")
async def screen_applications(
    req: ScreenApplicationsRequest,
    caller: CallerContext = Depends(require_permission("manage_recruitment")),
):
    """Score a job's applications, store each analysis and rank the candidates"""
    job = await _job_or_404(req.job_id)
    applications = await get_applications(req.job_id, req.application_ids)
    if not applications:
        raise NotFoundError("No applications found for this job", resource="applications", resource_id=req.job_id)

    requirements = requirement_set_from_job(job)
    state = await run_blocking(
        run_screening, req.job_id, requirements, applications,
        job_title=job.get("title", ""), report_dir=report_dir_from_env(),
    )

    results = state.get("results", {})
    decisions = state.get("decisions", {})
    names = {a["application_id"]: candidate_name(a) for a in applications}

    outcomes: List[ScreeningOutcome] = [
        ScreeningOutcome(
            application_id=row["application_id"],
            candidate_name=row["candidate_name"],
            recommendation=row["recommendation"],
            overall_score=row["overall_score"],
            confidence=row["confidence"],
            analysis=results[row["application_id"]].model_dump(),
        )
        for row in state.get("ranking", [])
    ]
    outcomes += [
        ScreeningOutcome(application_id=aid, candidate_name=names.get(aid, ""),
                         recommendation=decisions.get(aid, "manual_review"), error=error)
        for aid, error in state.get("failures", {}).items()
    ]

    not_saved = []
    for aid, result in results.items():
        try:
            await save_application_analysis(aid, result.model_dump(), decisions[aid])
        except HRInsightsError as e:
            logger.error(f"Failed to store analysis for application {aid}: {e}")
            not_saved.append(aid)

    found = set(names)
    summary = {
        "job_id": req.job_id,
        "total": len(outcomes),
        "shortlisted": sum(1 for o in outcomes if o.recommendation == "shortlist"),
        "failed": len(state.get("failures", {})),
    }
    await manager.send_to_user(caller.user_id, "screening_completed", summary)

    return {
        "success": True,
        "data": {
            **summary,
            "results": outcomes,
            "not_found": [aid for aid in req.application_ids if aid not in found],
            "not_saved": not_saved,
            "report_paths": state.get("report_paths", []),
        },
    }


@router.post("/analyze-skill-gaps")
async def skill_gaps(req: SkillGapRequest, caller: CallerContext = Depends(get_caller)):
    """Compare an employee's skills with a target role"""
    _ensure_self_or_permitted(caller, req.employee_id)
    employee = await _employee_or_404(req.employee_id)

    if isinstance(req.target_role, str):
        role_title = req.target_role.strip()
        jobs = await find_similar_jobs(role_title)
        if not jobs:
            raise NotFoundError("No job postings found for the target role", resource="target_role", resource_id=role_title)
        requirements = aggregate_role_requirements(jobs, min_count=min(2, len(jobs)))
    else:
        role_title = req.target_role.title
        requirements = RequirementSet(**req.target_role.model_dump(exclude={"title"}))

    if not requirements.skills:
        raise NotFoundError("Target role has no skill requirements", resource="target_role", resource_id=role_title)

    catalog = get_catalog()
    current = [
        ExtractedSkill(name=s["name"], category=catalog.skill_category(s["name"]), level=s.get("level"))
        for s in employee.get("skills") or [] if s.get("name")
    ]
    analysis = analyze_skill_gaps(current, requirements)

    await save_employee_insights(req.employee_id, {
        "skill_gaps": analysis.model_dump(),
        "skill_gaps_target": role_title,
        "skill_gaps_updated": datetime.utcnow(),
    })
    logger.info(f"Skill gap analysis for {req.employee_id}: {len(analysis.gaps)} gaps, {analysis.timeline_months} months")
    return {"success": True, "data": {"employee_id": req.employee_id, "target_role": role_title, "analysis": analysis}}


@router.post("/sentiment-analysis")
async def sentiment(req: SentimentRequest, caller: CallerContext = Depends(require_permission("use_ai_features"))):
    result = analyze_sentiment(req.text)
    return {"success": True, "data": {"context": req.context, **result.model_dump()}}


@router.post("/predict-performance")
async def predict(req: PerformanceRequest, caller: CallerContext = Depends(get_caller)):
    _ensure_self_or_permitted(caller, req.employee_id)
    employee = await _employee_or_404(req.employee_id)

    prediction = await run_blocking(predict_performance, employee_performance_data(employee))
    await save_employee_insights(req.employee_id, {
        "performance_prediction": prediction.model_dump(),
        "performance_prediction_updated": datetime.utcnow(),
    })
    return {"success": True, "data": {"employee_id": req.employee_id, "prediction": prediction}}


@router.get("/status")
async def status():
    catalog = get_catalog()
    settings = get_settings()
    return {
        "success": True,
        "data": {
            "status": "operational",
            "llm_enabled": llm_available(),
            "skills": sum(len(s) for s in catalog.skill_categories.values()),
            "intents": [i.category for i in catalog.intents],
            "weights": settings.weights.model_dump(),
            "websocket_users": len(manager.connections),
            "features": [
                "resume_analysis", "application_screening", "skill_gap_analysis",
                "sentiment_analysis", "performance_prediction", "chatbot",
            ],
        },
    }
