from __future__ import annotations

from typing import List, Union

from pydantic import BaseModel, Field


class ReportModel(BaseModel):
    id: Union[int, str]
    title: str
    description: str = ""
    category: str = ""
    type: str = "report"


class DashboardLayoutModel(BaseModel):
    visualOrder: List[str] = Field(default_factory=list)
    selectedDynamicReports: List[ReportModel] = Field(default_factory=list)


class DashboardCustomizationModel(DashboardLayoutModel):
    id: str
    userId: str
    lastUpdated: str


class ReportCatalogResponse(BaseModel):
    reports: List[ReportModel]
