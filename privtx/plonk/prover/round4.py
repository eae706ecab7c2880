"""
PLONK Prover Round 4: 다항식 평가값 산출
==========================================

  ┌─────────────────────────────────────────────────┐
  │  Verifier → Prover: ζ  (Fiat-Shamir)           │
  │  Prover → Verifier: ā, b̄, c̄, s̄_σ1, s̄_σ2, z̄_ω │
  └─────────────────────────────────────────────────┘

Schwartz-Zippel 보조정리에 의해, 랜덤 점 ζ에서 값이 일치하면
다항식 자체가 같을 확률이 매우 높다.
z̄_ω = z(ζ·ω)는 순열 제약의 z(ωx) 항 때문에 필요하다.
"""


def execute(state):
    """Round 4를 실행한다."""
    state.zeta = state.transcript.challenge_scalar(b"zeta")
    zeta = state.zeta
    pp = state.preprocessed

    proof = state.proof
    proof.a_eval = state.a_poly.evaluate(zeta)
    proof.b_eval = state.b_poly.evaluate(zeta)
    proof.c_eval = state.c_poly.evaluate(zeta)
    proof.s_sigma1_eval = pp.s_sigma1_poly.evaluate(zeta)
    proof.s_sigma2_eval = pp.s_sigma2_poly.evaluate(zeta)
    proof.z_omega_eval = state.z_poly.evaluate(zeta * state.omega)

    state.transcript.append_scalar(b"a_eval", proof.a_eval)
    state.transcript.append_scalar(b"b_eval", proof.b_eval)
    state.transcript.append_scalar(b"c_eval", proof.c_eval)
    state.transcript.append_scalar(b"s_sigma1_eval", proof.s_sigma1_eval)
    state.transcript.append_scalar(b"s_sigma2_eval", proof.s_sigma2_eval)
    state.transcript.append_scalar(b"z_omega_eval", proof.z_omega_eval)
