import os
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import motor.motor_asyncio
from dotenv import load_dotenv
from pymongo import ASCENDING

from app.utils.exceptions import ExceptionContext
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

load_dotenv()

MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "hr_insights_db")

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

try:
    client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS, serverSelectionTimeoutMS=5000)
    db = client[DB_NAME]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
jobs_coll = db["job_postings"]
applications_coll = db["applications"]
employees_coll = db["employees"]


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    specs = [
        (jobs_coll, [("job_id", ASCENDING)], True),
        (jobs_coll, [("title", ASCENDING), ("status", ASCENDING)], False),
        (applications_coll, [("application_id", ASCENDING)], True),
        (applications_coll, [("job_id", ASCENDING)], False),
        (employees_coll, [("employee_id", ASCENDING)], True),
    ]
    for coll, keys, unique in specs:
        name = f"{coll.name}.({', '.join(k for k, _ in keys)})"
        try:
            await coll.create_index(keys, unique=unique)
            logger.debug(f"Created {'unique ' if unique else ''}index on {name}")
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.debug(f"Index on {name} already exists")
            else:
                logger.warning(f"Could not create index on {name}: {e}")

    logger.info("Database index initialization completed")


def to_dict(doc):
    if not doc:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


# -------- Lookups used by the route handlers --------
async def get_job_posting(job_id: str) -> Optional[Dict[str, Any]]:
    with ExceptionContext("get_job_posting", logger, job_id=job_id):
        return to_dict(await jobs_coll.find_one({"job_id": job_id}))


async def find_similar_jobs(title: str, limit: int = 5) -> List[Dict[str, Any]]:
    cursor = jobs_coll.find({"title": {"$regex": re.escape(title), "$options": "i"}, "status": "active"}).limit(limit)
    return [to_dict(d) for d in await cursor.to_list(length=limit)]


async def get_applications(job_id: str, application_ids: List[str]) -> List[Dict[str, Any]]:
    cursor = applications_coll.find({"application_id": {"$in": application_ids}, "job_id": job_id})
    return [to_dict(d) for d in await cursor.to_list(length=None)]


async def save_application_analysis(application_id: str, analysis: Dict[str, Any], status: str) -> None:
    with ExceptionContext("save_application_analysis", logger, application_id=application_id):
        await applications_coll.update_one(
            {"application_id": application_id},
            {"$set": {"ai_analysis": analysis, "status": status, "updated_at": datetime.utcnow()}}
        )


async def get_employee(employee_id: str) -> Optional[Dict[str, Any]]:
    with ExceptionContext("get_employee", logger, employee_id=employee_id):
        return to_dict(await employees_coll.find_one({"employee_id": employee_id}))


async def save_employee_insights(employee_id: str, insights: Dict[str, Any]) -> None:
    with ExceptionContext("save_employee_insights", logger, employee_id=employee_id):
        await employees_coll.update_one(
            {"employee_id": employee_id},
            {"$set": {**{f"ai_insights.{k}": v for k, v in insights.items()}, "updated_at": datetime.utcnow()}}
        )
