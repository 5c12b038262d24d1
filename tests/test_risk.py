import itertools

import pandas as pd
import pytest

from safetyanalytics.app.services.risk import (
    LIKELIHOOD_WEIGHTS,
    SEVERITY_WEIGHTS,
    risk_level,
    risk_matrix,
    risk_score,
)


def test_risk_score_bounds():
    assert risk_score("A", "Almost Certain") == 10
    assert risk_score("Unknown", "Rare") == 0.4


def test_risk_score_example_and_defaults():
    assert risk_score("B", "Likely") == 6.4
    # unrecognized likelihood counts as Possible
    assert risk_score("C", None) == 3.6
    assert risk_score("bogus", "Rare") == risk_score("Unknown", "Rare")


def test_risk_score_is_monotonic():
    severities = sorted(SEVERITY_WEIGHTS, key=SEVERITY_WEIGHTS.get)
    likelihoods = sorted(LIKELIHOOD_WEIGHTS, key=LIKELIHOOD_WEIGHTS.get)
    for lik in likelihoods:
        scores = [risk_score(sev, lik) for sev in severities]
        assert scores == sorted(scores)
    for sev in severities:
        scores = [risk_score(sev, lik) for lik in likelihoods]
        assert scores == sorted(scores)


@pytest.mark.parametrize("score, level", [
    (0.4, "Low"),
    (1.9, "Low"),
    (2, "Moderate"),
    (4.8, "Elevated"),
    (6.4, "High"),
    (8, "Critical"),
    (10, "Critical"),
    ("n/a", "Low"),
])
def test_risk_level(score, level):
    assert risk_level(score) == level


def test_risk_matrix_counts_every_cell():
    df = pd.DataFrame({
        "severity": ["B", "B", "A", "D"],
        "likelihood": ["Likely", "Likely", "Rare", "Possible"],
    })
    cells = risk_matrix(df)
    assert len(cells) == len(SEVERITY_WEIGHTS) * len(LIKELIHOOD_WEIGHTS)
    by_key = {(c["severity"], c["likelihood"]): c for c in cells}
    assert by_key[("B", "Likely")]["count"] == 2
    assert by_key[("B", "Likely")]["level"] == "High"
    assert by_key[("A", "Rare")]["count"] == 1
    assert by_key[("C", "Likely")]["count"] == 0
    assert sum(c["count"] for c in cells) == 4
    assert set(by_key) == set(itertools.product(SEVERITY_WEIGHTS, LIKELIHOOD_WEIGHTS))


def test_risk_matrix_empty():
    assert all(c["count"] == 0 for c in risk_matrix(None))
