"""Registry of the Census variable sets the dashboard maps and charts."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class VariableSet:
    name: str
    dataset: str
    year: int
    variables: list[str]
    description: str
    labels: dict[str, str] = field(default_factory=dict)
    unit: str = ""
    geography: str = "tract"


AGE_COHORT_LABELS = [
    "0-4", "5-9", "10-14", "15-19",
    "20-24", "25-29", "30-34", "35-39",
    "40-44", "45-49", "50-54", "55-59",
    "60-64", "65-69", "70-74", "75-79",
    "80-84", "85+",
]

# DP1_0002P .. DP1_0019P: percent of total population in each five-year cohort
AGE_COHORT_VARIABLES = [f"DP1_00{n:02d}P" for n in range(2, 20)]


VARIABLE_REGISTRY: dict[str, VariableSet] = {
    "median_age": VariableSet(
        name="Median age",
        dataset="dec/dhc",
        year=2020,
        variables=["P13_001N"],
        description="Median age of the total population, 2020 Decennial Census (DHC).",
        labels={"P13_001N": "Median age"},
        unit="years",
    ),
    "age_profile": VariableSet(
        name="Age profile",
        dataset="dec/dp",
        year=2020,
        variables=AGE_COHORT_VARIABLES,
        description="Share of the population by five-year age cohort, 2020 Demographic Profile.",
        labels=dict(zip(AGE_COHORT_VARIABLES, AGE_COHORT_LABELS)),
        unit="percent",
    ),
}

MEDIAN_AGE = VARIABLE_REGISTRY["median_age"]
AGE_PROFILE = VARIABLE_REGISTRY["age_profile"]
