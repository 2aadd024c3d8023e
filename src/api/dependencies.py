from fastapi import HTTPException

from api import state
from classification.task_classifier import TaskClassifier
from storage.task_store import TaskStore

classifier = TaskClassifier()


def get_task_store() -> TaskStore:
    if state.task_store is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return state.task_store


def get_classifier() -> TaskClassifier:
    return classifier
