"""estimize_pipeline package.

Downloads Estimize release records per company, resolves each record's ticker
to the symbol in effect on the release date, and appends the records to one
flat file per resolved symbol.

Architecture:
- A shared rate gate bounds request issuance to the Estimize API
- Map files give the point-in-time ticker history used for resolution
- Dask fans the per-company fetches out across threads
- Pydantic models validate release payloads and registry entries
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
