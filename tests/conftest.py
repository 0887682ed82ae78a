# tests/conftest.py
"""
Shared contract sources and pipeline fixtures.

Each ``*_SOURCE`` constant is a small, self-contained Clarity contract
exercising one behaviour of the pipeline.  The ``run`` fixture returns a
callable that pushes a source through the full ``ParsingService``.
"""

import pytest

from clarity_audit.config import AnalysisConfig
from clarity_audit.parser import parse
from clarity_audit.semantic import analyze_program
from clarity_audit.service import ParsingService


# ─────────────────────────────────────────────────────────────────────────
#  Contract sources
# ─────────────────────────────────────────────────────────────────────────

OWNER_CONSTANT_SOURCE = "(define-constant contract-owner tx-sender)\n"

UNUSED_INTEREST_SOURCE = """\
(define-private (calculate-interest (balance uint))
  (/ (* balance u5) u100))
"""

REENTRANT_WITHDRAW_SOURCE = """\
(define-map balances principal uint)

(define-public (withdraw (amount uint) (recipient principal))
  (let ((balance (default-to u0 (map-get? balances tx-sender))))
    (unwrap! (stx-transfer? amount tx-sender recipient) (err u1))
    (map-set balances tx-sender (- balance amount))
    (ok true)))
"""

SAFE_WITHDRAW_SOURCE = """\
(define-map balances principal uint)

(define-public (withdraw (amount uint) (recipient principal))
  (let ((balance (default-to u0 (map-get? balances tx-sender))))
    (map-set balances tx-sender (- balance amount))
    (unwrap! (stx-transfer? amount tx-sender recipient) (err u1))
    (ok true)))
"""

UNAUTHORIZED_SETTER_SOURCE = """\
(define-data-var admin-setting uint u0)

(define-public (set-admin-setting (new-value uint))
  (begin
    (var-set admin-setting new-value)
    (ok true)))
"""

AUTHORIZED_SETTER_SOURCE = """\
(define-constant contract-owner tx-sender)
(define-data-var admin-setting uint u0)

(define-public (set-admin-setting (new-value uint))
  (begin
    (asserts! (is-eq tx-sender contract-owner) (err u401))
    (var-set admin-setting new-value)
    (ok true)))

(define-read-only (get-admin-setting)
  (var-get admin-setting))
"""

MISSING_PAREN_SOURCE = "(define-constant missing-paren"

TOKEN_SOURCE = """\
;; A small fungible token
(define-fungible-token clarity-coin)
(define-constant contract-owner tx-sender)
(define-constant err-owner-only (err u100))
(define-data-var total-minted uint u0)
(define-map allowances principal uint)

(define-read-only (get-balance (who principal))
  (ft-get-balance clarity-coin who))

(define-private (add-minted (amount uint))
  (var-set total-minted (+ (var-get total-minted) amount)))

(define-public (mint (amount uint) (recipient principal))
  (begin
    (asserts! (is-eq tx-sender contract-owner) err-owner-only)
    (add-minted amount)
    (ft-mint? clarity-coin amount recipient)))

(define-public (approve (spender principal) (amount uint))
  (begin
    (asserts! (is-eq tx-sender contract-owner) err-owner-only)
    (map-set allowances spender amount)
    (ok true)))

(define-read-only (get-allowance (spender principal))
  (default-to u0 (map-get? allowances spender)))
"""

RECURSIVE_SOURCE = """\
(define-private (ping (n uint))
  (if (> n u0) (pong (- n u1)) u0))

(define-private (pong (n uint))
  (ping n))

(define-public (start)
  (ok (ping u3)))
"""

SHARED_COUNTER_SOURCE = """\
(define-data-var total uint u0)

(define-public (add (n uint))
  (begin
    (var-set total (+ (var-get total) n))
    (ok true)))

(define-public (reset)
  (begin
    (var-set total u0)
    (ok true)))
"""

EXTERNAL_CALL_SOURCE = """\
(define-data-var counter uint u0)

(define-public (sync)
  (begin
    (try! (contract-call? .oracle refresh))
    (var-set counter (+ (var-get counter) u1))
    (ok true)))
"""

DUPLICATE_SOURCE = """\
(define-constant fee u10)
(define-constant fee u20)

(define-read-only (get-fee)
  fee)

(define-read-only (get-fee)
  u0)
"""


# ─────────────────────────────────────────────────────────────────────────
#  Fixtures
# ─────────────────────────────────────────────────────────────────────────


@pytest.fixture
def service():
    return ParsingService()


@pytest.fixture
def run():
    """Analyze a source with an optional config; returns the ServiceResult."""

    def _run(source, config=None, filename="contract.clar"):
        return ParsingService(config or AnalysisConfig()).analyze_text(source, filename)

    return _run


@pytest.fixture
def semantic_of():
    """Parse and semantically analyze a source; parse errors fail the test."""

    def _semantic_of(source):
        parsed = parse(source)
        assert parsed.success, parsed.errors
        return analyze_program(parsed.ast)

    return _semantic_of


@pytest.fixture
def contract_file(tmp_path):
    """Write a source to a ``.clar`` file under tmp_path; returns its path."""

    def _contract_file(source, name="contract.clar"):
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path

    return _contract_file
