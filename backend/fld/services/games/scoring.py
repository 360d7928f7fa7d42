from typing import Any, Dict, List

from . import SubmissionError


def _normalize_text(value: Any) -> str:
    return str(value if value is not None else '').strip().lower()


def answers_match(question: Dict[str, Any], answer: Any) -> bool:
    """Open questions compare trimmed and case-insensitive; multiple choice is exact.

    A blank answer never matches, and neither does anything when the
    question has no correct answer set.
    """
    correct = question.get('correctAnswer')
    if not _normalize_text(correct) or not _normalize_text(answer):
        return False
    if question.get('type') == 'multiple-choice':
        return answer == correct
    return _normalize_text(answer) == _normalize_text(correct)


def normalize_answers(questions: List[Dict[str, Any]], answers: Any) -> Dict[str, str]:
    """Return answers keyed by question id.

    Accepts either a mapping ``{question_id: answer}`` or a list aligned with
    the question order. Answers to unknown question ids are dropped.
    """
    if answers is None:
        answers = {}
    if isinstance(answers, list):
        answers = {
            str(q.get('id')): answers[i]
            for i, q in enumerate(questions)
            if i < len(answers)
        }
    if not isinstance(answers, dict):
        raise SubmissionError('answers must be an object or a list')
    known = {str(q.get('id')) for q in questions}
    normalized = {}
    for qid, value in answers.items():
        if str(qid) not in known:
            continue
        normalized[str(qid)] = '' if value is None else str(value)
    return normalized


def missing_answers(questions: List[Dict[str, Any]], answers: Dict[str, str]) -> List[str]:
    return [str(q.get('id')) for q in questions if not (answers.get(str(q.get('id'))) or '').strip()]


def score_answers(questions: List[Dict[str, Any]], answers: Dict[str, str]) -> int:
    """Sum the points of every correctly answered question."""
    score = 0
    for q in questions:
        if answers_match(q, answers.get(str(q.get('id')))):
            try:
                score += int(q.get('points', 1))
            except (TypeError, ValueError):
                score += 1
    return score


def team_leaderboard(config: Dict[str, Any], team_submissions: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Teams ranked by base score plus team quiz score, highest first."""
    rows = []
    for team in config.get('teams') or []:
        base = int(team.get('score') or 0)
        quiz = int((team_submissions.get(team.get('id')) or {}).get('score') or 0)
        rows.append({
            'team_id': team.get('id'),
            'name': team.get('name'),
            'color': team.get('color'),
            'base_score': base,
            'quiz_score': quiz,
            'total': base + quiz,
        })
    rows.sort(key=lambda r: r['total'], reverse=True)
    for rank, row in enumerate(rows, start=1):
        row['rank'] = rank
    return rows


def individual_leaderboard(submissions: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    ranked = sorted(submissions, key=lambda s: s.get('score') or 0, reverse=True)[:limit]
    return [
        {
            'rank': rank,
            'player_name': s.get('player_name'),
            'team_id': s.get('team_id'),
            'score': s.get('score') or 0,
        }
        for rank, s in enumerate(ranked, start=1)
    ]
