"""CLI commands for grading reference data and maintenance."""

from __future__ import annotations

import decimal

from sqlalchemy.orm import Session

import gradeflow.lib.cli as click
from gradeflow import grading as workflow
from gradeflow.core import di
from gradeflow.grading.block import create_block
from gradeflow.grading.errors import GradingError
from gradeflow.lib import json
from gradeflow.storage import examiner as examiner_storage
from gradeflow.storage import subject as subject_storage
from gradeflow.storage import user as user_storage


@click.group("grading")
def grading():
    """Seed grading reference data and run maintenance tasks."""
    ...


@grading.command("subject-create")
@click.argument("code")
@click.argument("name")
@di.inject
def subject_create(code: str, name: str, session: Session = di.Provide["storage.persistent.session"]) -> None:
    """Create a subject."""
    with session.begin():
        if subject_storage.get(code=code, session=session):
            click.echo(f"Error: Subject '{code}' already exists.", err=True)
            raise SystemExit(1)
        subject = subject_storage.create(code=code, name=name, session=session)

    click.echo(f"Created subject: {subject.name}")
    click.echo(f"  ID: {subject.subject_id}")
    click.echo(f"  Code: {subject.code}")


@grading.command("examiner-create")
@click.argument("examiner_code")
@click.argument("name")
@click.option("--subject", "-s", "subject_codes", multiple=True, help="Code of a subject the examiner may grade")
@click.option("--user", "-u", "email", help="Email of the user account to link")
@click.option("--inactive", is_flag=True, default=False)
@di.inject
def examiner_create(
    examiner_code: str,
    name: str,
    subject_codes: tuple[str, ...],
    email: str | None,
    inactive: bool,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create an examiner qualified for the given subjects."""
    with session.begin():
        subject_ids = []
        for code in subject_codes:
            subject = subject_storage.get(code=code, session=session)
            if subject is None:
                click.echo(f"Error: Subject '{code}' not found.", err=True)
                raise SystemExit(1)
            subject_ids.append(subject.subject_id)

        user_id = None
        if email:
            found_user = user_storage.get(email=email, session=session)
            if found_user is None:
                click.echo(f"Error: User '{email}' not found.", err=True)
                raise SystemExit(1)
            user_id = found_user.user_id

        examiner = examiner_storage.create(
            examiner_code=examiner_code,
            name=name,
            user_id=user_id,
            is_active=not inactive,
            subject_ids=subject_ids,
            session=session,
        )

    click.echo(f"Created examiner: {examiner.name}")
    click.echo(f"  ID: {examiner.examiner_id}")
    click.echo(f"  Code: {examiner.examiner_code}")
    click.echo(f"  Subjects: {', '.join(subject_codes) or '-'}")


@grading.command("block-create")
@click.argument("block_code")
@click.option("--subject", "-s", "subject_code", required=True, help="Subject code")
@click.option("--exam", "-e", "exam_id", required=True)
@click.option("--question", "-q", "question_number", type=click.IntRange(min=1), required=True)
@click.option("--max-score", "-m", type=click.DecimalType(), required=True)
@di.inject
def block_create(
    block_code: str,
    subject_code: str,
    exam_id: str,
    question_number: int,
    max_score: decimal.Decimal,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create an answer block."""
    try:
        with session.begin():
            subject = subject_storage.get(code=subject_code, session=session)
            if subject is None:
                click.echo(f"Error: Subject '{subject_code}' not found.", err=True)
                raise SystemExit(1)
            block = create_block(
                block_code=block_code,
                subject_id=subject.subject_id,
                exam_id=exam_id,
                question_number=question_number,
                max_score=max_score,
                session=session,
            )
    except GradingError as e:
        raise click.ClickException(e.message) from e

    click.echo(f"Created block: {block.block_code} (max {block.max_score})")


@grading.command("mark-overdue")
@di.inject
def mark_overdue(session: Session = di.Provide["storage.persistent.session"]) -> None:
    """Flag open assignments whose deadline has passed."""
    with session.begin():
        count = workflow.mark_overdue(session=session)
    click.echo(f"Marked {count} assignment(s) overdue")


@grading.command("compare")
@click.argument("block_code")
@click.option("--max-difference", type=click.DecimalType(), default=None, help="Tolerance for this comparison only")
@di.inject
def compare(
    block_code: str,
    max_difference: decimal.Decimal | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Print the comparison of a block's grading rounds."""
    try:
        with session.begin():
            outcome = workflow.compare_block(block_code, tolerance=max_difference, session=session)
    except GradingError as e:
        raise click.ClickException(e.message) from e
    click.echo(json.dumps(outcome, indent=2))


command = grading
