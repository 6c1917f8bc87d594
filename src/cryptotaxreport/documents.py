# documents.py
"""
Brazilian taxpayer document checks (CPF for people, CNPJ for companies).

Check-digit arithmetic comes from validate-docbr. Input must already be digits
only (see normalizers.only_digits): a punctuated number is rejected here so the
value written to the report is always the bare digits.
"""

from __future__ import annotations

from validate_docbr import CNPJ, CPF

_CPF = CPF()
_CNPJ = CNPJ()


def _digits_of_length(value: str, length: int) -> bool:
    # repeated-digit numbers (11111111111) pass mod-11 but are never issued
    return len(value) == length and value.isdigit() and len(set(value)) > 1


def is_valid_cpf(value: str) -> bool:
    return _digits_of_length(value, 11) and _CPF.validate(value)


def is_valid_cnpj(value: str) -> bool:
    return _digits_of_length(value, 14) and _CNPJ.validate(value)
