"""
PLONK 데이터 직렬화/역직렬화 헬퍼
====================================

키 파일(JSON)과 HTTP 응답에 담을 수 있는 형태로 PLONK 객체를 변환한다.
정수는 JSON 숫자 정밀도 문제를 피하려고 모두 10진 문자열로 저장한다.

FR, G1, G2, Polynomial, SRS, PreprocessedData, VerifyingKey, Proof.
"""

from py_ecc import optimized_bn128 as bn128

from privtx.plonk.field import FR, get_roots_of_unity, to_affine, g1_from_affine
from privtx.plonk.polynomial import Polynomial
from privtx.plonk.srs import SRS
from privtx.plonk.preprocessor import PreprocessedData, VerifyingKey
from privtx.plonk.prover import Proof


# ─── FR ───

def serialize_fr(val):
    """FR → str(int)"""
    return str(int(val))


# ─── G1 point ───

def serialize_g1(point):
    """G1 point → [str, str] (무한원점은 ["0", "0"])"""
    x, y = to_affine(point)
    return [str(x), str(y)]


def deserialize_g1(data):
    """[str, str] → G1 point (곡선 위에 있는지 확인한다)"""
    return g1_from_affine(int(data[0]), int(data[1]))


# ─── G2 point ───

def serialize_g2(point):
    """G2 point → [[str,str],[str,str]]"""
    x, y = bn128.normalize(point)
    return [
        [str(int(x.coeffs[0])), str(int(x.coeffs[1]))],
        [str(int(y.coeffs[0])), str(int(y.coeffs[1]))],
    ]


def deserialize_g2(data):
    """[[str,str],[str,str]] → G2 point"""
    point = (
        bn128.FQ2([int(data[0][0]), int(data[0][1])]),
        bn128.FQ2([int(data[1][0]), int(data[1][1])]),
        bn128.FQ2.one(),
    )
    if not bn128.is_on_curve(point, bn128.b2):
        raise ValueError("G2 점이 곡선 위에 있지 않습니다")
    return point


# ─── Polynomial ───

def serialize_poly(poly):
    """Polynomial → list of str (계수)"""
    return [str(int(c)) for c in poly.coeffs]


def deserialize_poly(data):
    """list of str → Polynomial"""
    return Polynomial([FR(int(s)) for s in data])


# ─── SRS ───

def serialize_srs(srs):
    """SRS → dict"""
    return {
        "g1_powers": [serialize_g1(p) for p in srs.g1_powers],
        "g2_powers": [serialize_g2(p) for p in srs.g2_powers],
        "max_degree": srs.max_degree,
    }


def deserialize_srs(data):
    """dict → SRS"""
    g1_powers = [deserialize_g1(p) for p in data["g1_powers"]]
    g2_powers = [deserialize_g2(p) for p in data["g2_powers"]]
    if len(g1_powers) != data["max_degree"] + 1:
        raise ValueError("SRS G1 거듭제곱 개수가 max_degree와 맞지 않습니다")
    return SRS(g1_powers, g2_powers, data["max_degree"])


# ─── PreprocessedData ───

def serialize_preprocessed(pp):
    """PreprocessedData → dict (도메인은 n에서 다시 계산하므로 저장하지 않는다)"""
    data = {
        "n": pp.n,
        "num_public_inputs": pp.num_public_inputs,
        "circuit_digest": pp.circuit_digest,
        "sigma": list(pp.sigma),
    }
    for name in PreprocessedData.SELECTORS + PreprocessedData.PERMUTATIONS:
        data[name + "_poly"] = serialize_poly(getattr(pp, name + "_poly"))
        data[name + "_comm"] = serialize_g1(getattr(pp, name + "_comm"))
    return data


def deserialize_preprocessed(data):
    """dict → PreprocessedData"""
    pp = PreprocessedData()
    pp.n = data["n"]
    pp.domain = get_roots_of_unity(pp.n)
    pp.omega = pp.domain[1] if pp.n > 1 else FR(1)
    pp.num_public_inputs = data["num_public_inputs"]
    pp.circuit_digest = data["circuit_digest"]
    pp.sigma = list(data["sigma"])
    for name in PreprocessedData.SELECTORS + PreprocessedData.PERMUTATIONS:
        setattr(pp, name + "_poly", deserialize_poly(data[name + "_poly"]))
        setattr(pp, name + "_comm", deserialize_g1(data[name + "_comm"]))
    return pp


# ─── VerifyingKey ───

def serialize_verifying_key(vk):
    """VerifyingKey → dict"""
    return {
        "protocol": "plonk",
        "curve": "bn128",
        "n": vk.n,
        "num_public_inputs": vk.num_public_inputs,
        "circuit_digest": vk.circuit_digest,
        "commitments": {
            name: serialize_g1(getattr(vk, name + "_comm"))
            for name in PreprocessedData.SELECTORS + PreprocessedData.PERMUTATIONS
        },
        "g2_powers": [serialize_g2(p) for p in vk.g2_powers],
    }


def deserialize_verifying_key(data):
    """dict → VerifyingKey"""
    return VerifyingKey(
        n=data["n"],
        num_public_inputs=data["num_public_inputs"],
        commitments={
            name: deserialize_g1(data["commitments"][name])
            for name in PreprocessedData.SELECTORS + PreprocessedData.PERMUTATIONS
        },
        g2_powers=[deserialize_g2(p) for p in data["g2_powers"]],
        circuit_digest=data["circuit_digest"],
    )


# ─── Proof ───

def serialize_proof(proof):
    """Proof → dict (이름 → 10진 문자열 또는 [x, y])"""
    data = {}
    for name in Proof.POINTS:
        data[name] = serialize_g1(getattr(proof, name))
    for name in Proof.SCALARS:
        data[name] = serialize_fr(getattr(proof, name))
    return data


def deserialize_proof(data):
    """dict → Proof

    Raises:
        ValueError: 필드가 없거나, 점이 곡선 위에 없거나, 값이 범위를 벗어날 때
    """
    elements = []
    try:
        for name in Proof.POINTS:
            elements.extend(int(c) for c in data[name])
        for name in Proof.SCALARS:
            elements.append(int(data[name]))
    except (KeyError, TypeError) as e:
        raise ValueError(f"증명 형식이 올바르지 않습니다: {e}") from e
    return Proof.from_elements(elements)
