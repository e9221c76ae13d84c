"""
Tests for claim filing and review
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from app.db.models import Policy
from app.domain.value_objects import ReferencePrefix, is_reference_number
from app.utils.datetime_utils import today


def _file_claim(client, headers, policy_id, **fields):
    payload = {
        "policy_id": policy_id,
        "claim_type": "collision",
        "incident_date": today().isoformat(),
        "description": "Rear-ended at a stop light",
        "location": "Main St & 5th Ave",
        "estimated_amount": "2500.00",
        **fields,
    }
    return client.post("/claims", json=payload, headers=headers)


@pytest.fixture
def policy(api, customer):
    return api.bind_policy(customer["headers"])


@pytest.fixture
def claim(client, customer, policy):
    response = _file_claim(client, customer["headers"], policy["id"])
    assert response.status_code == 201, response.text
    return response.json()


def _review(client, agent, claim_id, **changes):
    return client.patch(f"/claims/{claim_id}", json=changes, headers=agent["headers"])


# ============================================
# Filing
# ============================================

def test_file_claim(claim, customer, policy):
    assert is_reference_number(claim["claim_number"], ReferencePrefix.CLAIM)
    assert claim["status"] == "submitted"
    assert claim["claim_type"] == "collision"
    assert claim["policy_id"] == policy["id"]
    assert claim["claimant_id"] == customer["user"]["id"]
    assert claim["reported_date"] == today().isoformat()
    assert Decimal(claim["estimated_amount"]) == Decimal("2500")
    assert claim["is_fraudulent"] is False


def test_agent_files_claim_for_policyholder(client, customer, agent, policy):
    response = _file_claim(client, agent["headers"], policy["id"])

    assert response.status_code == 201
    assert response.json()["claimant_id"] == customer["user"]["id"]


def test_file_claim_incident_in_future(client, customer, policy):
    response = _file_claim(
        client, customer["headers"], policy["id"],
        incident_date=(today() + timedelta(days=1)).isoformat(),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Incident date cannot be in the future"


def test_file_claim_incident_before_policy_start(client, customer, policy):
    response = _file_claim(
        client, customer["headers"], policy["id"],
        incident_date=(today() - timedelta(days=1)).isoformat(),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Incident date is outside the policy term"


def test_file_claim_on_pending_policy(client, api, customer):
    pending = api.bind_policy(customer["headers"], effective_date=(today() + timedelta(days=7)).isoformat())

    response = _file_claim(client, customer["headers"], pending["id"])

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot file a claim against a pending policy"


def test_file_claim_on_cancelled_policy_for_earlier_incident(client, customer, policy):
    client.post(f"/policies/{policy['id']}/cancel", json={"reason": "Sold"}, headers=customer["headers"])

    response = _file_claim(client, customer["headers"], policy["id"])

    assert response.status_code == 201


def test_file_claim_incident_after_reported_date(client, customer, policy):
    response = _file_claim(
        client, customer["headers"], policy["id"],
        reported_date=(today() - timedelta(days=1)).isoformat(),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Incident date cannot be after the reported date"


def test_file_claim_reported_in_future(client, customer, policy):
    response = _file_claim(
        client, customer["headers"], policy["id"],
        reported_date=(today() + timedelta(days=1)).isoformat(),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Reported date cannot be in the future"


def test_file_claim_incident_after_cancellation(client, api, customer, policy):
    client.post(f"/policies/{policy['id']}/cancel", json={"reason": "Sold"}, headers=customer["headers"])
    api.update_record(
        Policy, policy["id"],
        effective_date=today() - timedelta(days=10),
        cancellation_date=today() - timedelta(days=5),
    )

    response = _file_claim(
        client, customer["headers"], policy["id"],
        incident_date=(today() - timedelta(days=2)).isoformat(),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Incident occurred after the policy was cancelled"


def test_file_claim_on_other_customers_policy(client, other_customer, policy):
    response = _file_claim(client, other_customer["headers"], policy["id"])

    assert response.status_code == 404
    assert response.json()["detail"] == "Policy not found"


def test_file_claim_invalid_type(client, customer, policy):
    response = _file_claim(client, customer["headers"], policy["id"], claim_type="meteor")

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "claim_type"


# ============================================
# Visibility
# ============================================

def test_claims_are_private(client, claim, other_customer, agent):
    assert client.get(f"/claims/{claim['id']}", headers=other_customer["headers"]).status_code == 404
    assert client.get("/claims", headers=other_customer["headers"]).json() == []
    assert [c["id"] for c in client.get("/claims", headers=agent["headers"]).json()] == [claim["id"]]


def test_policy_claims(client, claim, customer, policy):
    response = client.get(f"/policies/{policy['id']}/claims", headers=customer["headers"])

    assert response.status_code == 200
    assert response.json() == [{
        "id": claim["id"],
        "claim_number": claim["claim_number"],
        "status": "submitted",
        "claim_type": "collision",
        "incident_date": today().isoformat(),
    }]


# ============================================
# Review
# ============================================

def test_customer_cannot_review(client, claim, customer):
    response = client.patch(f"/claims/{claim['id']}", json={"status": "under_review"}, headers=customer["headers"])

    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


def test_full_approval_flow(client, claim, agent):
    under_review = _review(client, agent, claim["id"], status="under_review", adjuster_notes="Photos received")
    assert under_review.status_code == 200
    assert under_review.json()["adjuster_id"] == agent["user"]["id"]
    assert under_review.json()["adjuster_notes"] == "Photos received"

    approved = _review(client, agent, claim["id"], status="approved", approved_amount="2000.00")
    assert approved.status_code == 200
    assert Decimal(approved.json()["approved_amount"]) == Decimal("2000")

    settled = _review(client, agent, claim["id"], status="settled")
    assert settled.status_code == 200
    assert Decimal(settled.json()["settled_amount"]) == Decimal("2000")

    closed = _review(client, agent, claim["id"], status="closed")
    assert closed.status_code == 200
    assert closed.json()["status"] == "closed"
    assert closed.json()["closed_date"] == today().isoformat()


def test_approved_amount_locked_after_settlement(client, claim, agent):
    _review(client, agent, claim["id"], status="under_review")
    _review(client, agent, claim["id"], status="approved", approved_amount="500.00")
    _review(client, agent, claim["id"], status="settled")

    response = _review(client, agent, claim["id"], approved_amount="99999")

    assert response.status_code == 400
    assert response.json()["detail"] == "Approved amount cannot be changed on a settled claim"
    stored = client.get(f"/claims/{claim['id']}", headers=agent["headers"]).json()
    assert Decimal(stored["approved_amount"]) == Decimal("500")
    assert Decimal(stored["settled_amount"]) == Decimal("500")


def test_approved_amount_rejected_before_review(client, claim, agent):
    response = _review(client, agent, claim["id"], approved_amount="500.00")

    assert response.status_code == 400
    assert response.json()["detail"] == "Approved amount cannot be changed on a submitted claim"


def test_approved_amount_set_during_investigation(client, claim, agent):
    _review(client, agent, claim["id"], status="under_review")
    _review(client, agent, claim["id"], status="investigating")

    response = _review(client, agent, claim["id"], approved_amount="750.00")

    assert response.status_code == 200
    assert Decimal(response.json()["approved_amount"]) == Decimal("750")
    assert response.json()["status"] == "investigating"


def test_approve_requires_amount(client, claim, agent):
    _review(client, agent, claim["id"], status="under_review")

    response = _review(client, agent, claim["id"], status="approved")

    assert response.status_code == 400
    assert response.json()["detail"] == "Approved amount is required to approve a claim"


def test_deny_requires_reason(client, claim, agent):
    _review(client, agent, claim["id"], status="under_review")

    assert _review(client, agent, claim["id"], status="denied").status_code == 400

    denied = _review(client, agent, claim["id"], status="denied", denial_reason="Not covered")
    assert denied.status_code == 200
    assert denied.json()["denial_reason"] == "Not covered"


def test_invalid_transition(client, claim, agent):
    response = _review(client, agent, claim["id"], status="settled")

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot move claim from 'submitted' to 'settled'"


def test_flag_fraud(client, claim, agent):
    response = _review(client, agent, claim["id"], is_fraudulent=True, fraud_score="0.85")

    assert response.status_code == 200
    assert response.json()["is_fraudulent"] is True
    assert Decimal(response.json()["fraud_score"]) == Decimal("0.85")
    assert response.json()["status"] == "submitted"


def test_fraud_score_out_of_range(client, claim, agent):
    assert _review(client, agent, claim["id"], fraud_score="1.5").status_code == 400
