"""
Labor Court Regions
===================

Maps the TRT code embedded in a CNJ process number to its state and
macro-region.

CNJ format: NNNNNNN-DD.AAAA.J.TT.OOOO, where TT is the TRT code.
Example: 0001380-35.2023.5.09.0662 -> TRT 09 (Paraná)
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class RegionInfo:
    """One TRT region"""
    code: str
    name: str
    state: str
    uf: str
    macro_region: str


UNKNOWN_REGION = "Não identificado"

TRT_REGIONS: Dict[str, RegionInfo] = {
    info.code: info for info in [
        RegionInfo("01", "TRT 1", "Rio de Janeiro", "RJ", "Sudeste"),
        RegionInfo("02", "TRT 2", "São Paulo", "SP", "Sudeste"),
        RegionInfo("03", "TRT 3", "Minas Gerais", "MG", "Sudeste"),
        RegionInfo("04", "TRT 4", "Rio Grande do Sul", "RS", "Sul"),
        RegionInfo("05", "TRT 5", "Bahia", "BA", "Nordeste"),
        RegionInfo("06", "TRT 6", "Pernambuco", "PE", "Nordeste"),
        RegionInfo("07", "TRT 7", "Ceará", "CE", "Nordeste"),
        RegionInfo("08", "TRT 8", "Pará", "PA", "Norte"),
        RegionInfo("09", "TRT 9", "Paraná", "PR", "Sul"),
        RegionInfo("10", "TRT 10", "Distrito Federal", "DF", "Centro-Oeste"),
        RegionInfo("11", "TRT 11", "Amazonas", "AM", "Norte"),
        RegionInfo("12", "TRT 12", "Santa Catarina", "SC", "Sul"),
        RegionInfo("13", "TRT 13", "Paraíba", "PB", "Nordeste"),
        RegionInfo("14", "TRT 14", "Rondônia", "RO", "Norte"),
        RegionInfo("15", "TRT 15", "São Paulo Interior", "SP", "Sudeste"),
        RegionInfo("16", "TRT 16", "Maranhão", "MA", "Nordeste"),
        RegionInfo("17", "TRT 17", "Espírito Santo", "ES", "Sudeste"),
        RegionInfo("18", "TRT 18", "Goiás", "GO", "Centro-Oeste"),
        RegionInfo("19", "TRT 19", "Alagoas", "AL", "Nordeste"),
        RegionInfo("20", "TRT 20", "Sergipe", "SE", "Nordeste"),
        RegionInfo("21", "TRT 21", "Rio Grande do Norte", "RN", "Nordeste"),
        RegionInfo("22", "TRT 22", "Piauí", "PI", "Nordeste"),
        RegionInfo("23", "TRT 23", "Mato Grosso", "MT", "Centro-Oeste"),
        RegionInfo("24", "TRT 24", "Mato Grosso do Sul", "MS", "Centro-Oeste"),
    ]
}

_CNJ_PATTERN = re.compile(r"\d{7}-\d{2}\.\d{4}\.\d\.(\d{2})\.\d{4}")


def extract_region_code(process_number: Optional[str]) -> Optional[str]:
    """
    Extract the TRT code from a process number.

    Tries the dotted CNJ format first, then falls back to positions 14-15
    of the digit-only form (20 digits: NNNNNNNDDAAAAJTTOOOO).
    """
    if not process_number:
        return None

    match = _CNJ_PATTERN.search(process_number)
    if match:
        return match.group(1)

    digits = re.sub(r"\D", "", process_number)
    if len(digits) >= 16:
        return digits[14:16]

    return None


def region_info(code: Optional[str]) -> Optional[RegionInfo]:
    if not code:
        return None
    return TRT_REGIONS.get(code)


def macro_region_for(code: Optional[str]) -> str:
    """Macro-region label for grouping; unknown codes collapse to one bucket"""
    info = region_info(code)
    return info.macro_region if info else UNKNOWN_REGION
