"""Sector policies."""
from .default import DEFAULT_POLICY
from .legal import LEGAL_POLICY
from .medical import MEDICAL_POLICY
from .education import EDUCATION_POLICY
from .sales import SALES_POLICY

SECTOR_POLICIES = [LEGAL_POLICY, MEDICAL_POLICY, EDUCATION_POLICY, SALES_POLICY]

__all__ = ['DEFAULT_POLICY', 'LEGAL_POLICY', 'MEDICAL_POLICY', 'EDUCATION_POLICY', 'SALES_POLICY', 'SECTOR_POLICIES']
