"""
Static parameter panels for catalog tests
"""

from typing import Dict, List, Optional

from ..models import ReferenceRange, PanelParameter


def _param(id: str, name: str, unit: str, normal: tuple,
           critical: Optional[tuple] = None) -> PanelParameter:
    return PanelParameter(
        id=id,
        name=name,
        unit=unit,
        normal_range=ReferenceRange(min=normal[0], max=normal[1]),
        critical_range=ReferenceRange(min=critical[0], max=critical[1]) if critical else None,
    )


CBC_PANEL = [
    _param("WBC", "White Blood Cells", "cells/uL", (4000, 11000), (2000, 20000)),
    _param("RBC", "Red Blood Cells", "cells/uL", (4200000, 5400000), (3000000, 7000000)),
    _param("HGB", "Hemoglobin", "g/dL", (12.0, 15.5), (7.0, 20.0)),
    _param("HCT", "Hematocrit", "%", (36, 46), (20, 60)),
    _param("PLT", "Platelets", "cells/uL", (150000, 450000), (50000, 1000000)),
]

LIPID_PANEL = [
    _param("CHOL", "Total Cholesterol", "mg/dL", (0, 200)),
    _param("LDL", "LDL Cholesterol", "mg/dL", (0, 100)),
    _param("HDL", "HDL Cholesterol", "mg/dL", (40, 100)),
    _param("TRIG", "Triglycerides", "mg/dL", (0, 150)),
]

THYROID_PANEL = [
    _param("TSH", "TSH", "mIU/L", (0.4, 4.0)),
    _param("FT4", "Free T4", "ng/dL", (0.9, 1.7)),
    _param("FT3", "Free T3", "pg/mL", (2.3, 4.2)),
]


class PanelRegistry:
    """Maps catalog test ids to their measurable parameters"""

    def __init__(self, panels: Optional[Dict[str, List[PanelParameter]]] = None):
        self._panels: Dict[str, List[PanelParameter]] = dict(panels or {})

    @classmethod
    def default(cls) -> "PanelRegistry":
        return cls({
            "T001": CBC_PANEL,
            "T002": LIPID_PANEL,
            "T004": THYROID_PANEL,
        })

    def register(self, test_id: str, parameters: List[PanelParameter]):
        self._panels[test_id] = list(parameters)

    def parameters_for(self, test_id: str) -> List[PanelParameter]:
        return list(self._panels.get(test_id, []))

    def parameter(self, test_id: str, parameter_id: str) -> Optional[PanelParameter]:
        for parameter in self._panels.get(test_id, []):
            if parameter.id == parameter_id:
                return parameter
        return None
