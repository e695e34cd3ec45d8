from __future__ import annotations

from campaigndocs.errors import IntegrityError
from campaigndocs.models import Campaign
from campaigndocs.util import format_cell

# (store field, header) in column order
CAMPAIGN_FIELDS: list[tuple[str, str]] = [
    ("id", "ID"),
    ("CA_Name", "Name"),
    ("CA_Campaign_Identifier", "Identifier"),
    ("CA_Division", "Division"),
    ("CA_Status", "Status"),
    ("CA_Quarter", "Quarter"),
    ("CA_Year", "Year"),
    ("CA_Creative_Folder", "Creative Folder"),
    ("CA_Custom_Dim_1", "Dimension 1"),
    ("CA_Custom_Dim_2", "Dimension 2"),
    ("CA_Custom_Dim_3", "Dimension 3"),
    ("CA_Start_Date", "Start Date"),
    ("CA_End_Date", "End Date"),
    ("CA_Sprint_Dates", "Sprint Dates"),
    ("CA_Budget", "Budget"),
    ("CA_Currency", "Currency"),
    ("CA_Custom_Fee_1", "Fee 1"),
    ("CA_Custom_Fee_2", "Fee 2"),
    ("CA_Custom_Fee_3", "Fee 3"),
    ("CA_Client_Ext_Id", "External Client ID"),
    ("CA_PO", "PO"),
    ("CA_Billing_ID", "Billing ID"),
    ("CA_Last_Edit", "Last Edit"),
    ("createdAt", "Created At"),
    ("updatedAt", "Updated At"),
    ("officialVersionId", "Official Version ID"),
]


def campaign_summary(campaign: Campaign | None) -> list[list[str]]:
    """Two rows: headers, then the campaign's values."""
    if campaign is None or not campaign.id:
        raise IntegrityError("Campaign not found")
    headers = [header for _, header in CAMPAIGN_FIELDS]
    values = [format_cell(campaign.get(field)) for field, _ in CAMPAIGN_FIELDS]
    return [headers, values]
