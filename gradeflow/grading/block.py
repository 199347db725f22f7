from __future__ import annotations

import decimal
import re

from gradeflow.model import AnswerBlock, BlockCodePattern, ScoreLimit, SubjectID
from gradeflow.storage import Session
from gradeflow.storage import block as block_storage
from gradeflow.storage import subject as subject_storage

from .errors import BlockNotFound, MalformedBlockCode, OutOfRange, SubjectNotFound

_block_code = re.compile(BlockCodePattern)


def check_block_code(block_code: str) -> str:
    if not _block_code.fullmatch(block_code):
        raise MalformedBlockCode(f"Malformed block code: {block_code!r}", block_code=block_code)
    return block_code


def load_block(block_code: str, *, for_update: bool = False, session: Session) -> AnswerBlock:
    check_block_code(block_code)
    block = block_storage.get(block_code, for_update=for_update, session=session)
    if block is None:
        raise BlockNotFound(f"Block {block_code} not found", block_code=block_code)
    return block


def lock_block(block_code: str, *, session: Session) -> AnswerBlock:
    """Serialize workflow mutations on one block.

    Takes the block's row lock for the rest of the transaction and bumps its
    version. Must be called inside a transaction.
    """
    block = load_block(block_code, for_update=True, session=session)
    version = block_storage.touch(block_code, session=session)
    return block.model_copy(update={"version": version})


def check_score(score: decimal.Decimal, block: AnswerBlock) -> decimal.Decimal:
    if score < 0 or score > block.max_score:
        raise OutOfRange(
            f"Score {score} is outside 0..{block.max_score}",
            block_code=block.block_code,
            score=score,
        )
    if score != score.quantize(decimal.Decimal("0.01")):
        raise OutOfRange(f"Score {score} has more than two decimal places", block_code=block.block_code)
    return score


def create_block(
    *,
    block_code: str,
    subject_id: SubjectID,
    exam_id: str,
    question_number: int,
    max_score: decimal.Decimal,
    session: Session,
) -> AnswerBlock:
    check_block_code(block_code)
    if max_score <= 0 or max_score > ScoreLimit:
        raise OutOfRange(f"Maximum score must be within (0, {ScoreLimit}], got {max_score}", block_code=block_code)
    if max_score != max_score.quantize(decimal.Decimal("0.01")):
        raise OutOfRange(f"Maximum score {max_score} has more than two decimal places", block_code=block_code)
    if subject_storage.get(subject_id=subject_id, session=session) is None:
        raise SubjectNotFound(f"Subject {subject_id} not found", subject_id=subject_id)
    return block_storage.create(
        block_code=block_code,
        subject_id=subject_id,
        exam_id=exam_id,
        question_number=question_number,
        max_score=max_score,
        session=session,
    )
