from fastapi import APIRouter, Depends
from pydantic import BaseModel, constr
from typing import List, Optional
from sqlalchemy.orm import Session
from quizarcade.core.database import get_db
from quizarcade.core.auth import current_identity, require_roles
from quizarcade.services import bank

router = APIRouter()

class QuestionIn(BaseModel):
    chapter: str
    question: str
    choice_a: Optional[str] = None
    choice_b: Optional[str] = None
    choice_c: Optional[str] = None
    choice_d: Optional[str] = None
    correct_answer: constr(min_length=1, max_length=1)
    explanation: Optional[str] = None

class QuestionImport(BaseModel):
    questions: List[QuestionIn]

class ChapterOut(BaseModel):
    name: str
    question_count: int

@router.get("/chapters", response_model=List[ChapterOut], dependencies=[Depends(current_identity)])
def list_chapters(db: Session = Depends(get_db)):
    return [ChapterOut(**c) for c in bank.list_chapters(db)]

@router.post("/import", status_code=201, dependencies=[Depends(require_roles("author", "admin"))])
def import_questions(payload: QuestionImport, db: Session = Depends(get_db)):
    n = bank.load_questions(db, [q.model_dump() for q in payload.questions])
    return {"imported": n}
