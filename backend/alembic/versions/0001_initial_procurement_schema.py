"""initial procurement schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ORDER_STATUSES = (
    "'requested','pending','admin_ordered','assigned_to_partner','partner_processing',"
    "'assigned_to_supplier','supplier_processing','waiting_delivery','available','consumed',"
    "'delivered','cancelled','removed_from_ordering'"
)


def upgrade():
    # --- service registry (read-only for procurement) ---
    op.create_table(
        "Client",
        sa.Column("ClientID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("FullName", sa.String(200), nullable=False),
        sa.Column("Phone", sa.String(50)),
        sa.Column("Email", sa.String(200)),
        sa.Column("Address", sa.String(300)),
        sa.Column("City", sa.String(100)),
    )
    op.create_table(
        "Technician",
        sa.Column("TechnicianID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("FullName", sa.String(200), nullable=False),
        sa.Column("Specialization", sa.String(100)),
        sa.Column("Phone", sa.String(50)),
        sa.Column("Email", sa.String(200)),
        sa.Column("IsActive", sa.Boolean, nullable=False, server_default=sa.text("1")),
    )
    op.create_table(
        "RepairService",
        sa.Column("ServiceID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ClientID", sa.Integer, sa.ForeignKey("Client.ClientID"), nullable=False),
        sa.Column("TechnicianID", sa.Integer, sa.ForeignKey("Technician.TechnicianID")),
        sa.Column("Manufacturer", sa.String(100)),
        sa.Column("ApplianceInfo", sa.String(300)),
        sa.Column("Description", sa.String(1000)),
        sa.Column("Status_s", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # --- fulfillment registry ---
    op.create_table(
        "FulfillmentParty",
        sa.Column("PartyID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("Name", sa.String(100), nullable=False, unique=True),
        sa.Column("CompanyName", sa.String(200)),
        sa.Column("PartyType", sa.String(20), nullable=False),
        sa.Column("Email", sa.String(200)),
        sa.Column("Phone", sa.String(50)),
        sa.Column("ContactPerson", sa.String(100)),
        sa.Column("Priority", sa.Integer, nullable=False, server_default=sa.text("5")),
        sa.Column("AverageDeliveryDays", sa.Integer, nullable=False, server_default=sa.text("7")),
        sa.Column("IsActive", sa.Boolean, nullable=False, server_default=sa.text("1")),
        sa.Column("Notes", sa.String(1000)),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("PartyType IN ('supplier','partner')", name="CK_Party_Type"),
        sa.CheckConstraint("Priority BETWEEN 1 AND 10", name="CK_Party_Priority"),
        sa.CheckConstraint("AverageDeliveryDays >= 1", name="CK_Party_DeliveryDays"),
    )
    op.create_table(
        "PartyBrand",
        sa.Column("BrandID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("PartyID", sa.Integer, sa.ForeignKey("FulfillmentParty.PartyID", ondelete="CASCADE"), nullable=False),
        sa.Column("BrandName", sa.String(100), nullable=False),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("PartyID", "BrandName", name="UQ_PartyBrand"),
    )

    # --- users ---
    op.create_table(
        "AppUser",
        sa.Column("UserID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("Username", sa.String(50), nullable=False, unique=True),
        sa.Column("FullName", sa.String(100)),
        sa.Column("Email", sa.String(200)),
        sa.Column("HashedPassword", sa.String(255), nullable=False),
        sa.Column("Role", sa.String(20), nullable=False, server_default=sa.text("'viewer'")),
        sa.Column("PartyID", sa.Integer, sa.ForeignKey("FulfillmentParty.PartyID")),
        sa.Column("TechnicianID", sa.Integer, sa.ForeignKey("Technician.TechnicianID")),
        sa.Column("IsActive", sa.Boolean, nullable=False, server_default=sa.text("1")),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "Role IN ('admin','technician','business_partner','supplier','viewer')", name="CK_AppUser_Role"
        ),
    )

    # --- orders / tasks ---
    op.create_table(
        "SparePartOrder",
        sa.Column("OrderID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ServiceID", sa.Integer),
        sa.Column("TechnicianID", sa.Integer),
        sa.Column("PartName", sa.String(200), nullable=False),
        sa.Column("PartNumber", sa.String(100)),
        sa.Column("Quantity", sa.Integer, nullable=False),
        sa.Column("Description", sa.String(500)),
        sa.Column("Urgency", sa.String(10), nullable=False),
        sa.Column("WarrantyStatus", sa.String(20), nullable=False),
        sa.Column("Status_s", sa.String(30), nullable=False),
        sa.Column("EstimatedCost", sa.DECIMAL(10, 2)),
        sa.Column("ActualCost", sa.DECIMAL(10, 2)),
        sa.Column("RequesterType", sa.String(20), nullable=False),
        sa.Column("RequesterUserID", sa.Integer),
        sa.Column("AssignedPartnerID", sa.Integer, sa.ForeignKey("FulfillmentParty.PartyID")),
        sa.Column("AssignedSupplierID", sa.Integer, sa.ForeignKey("FulfillmentParty.PartyID")),
        sa.Column("AssignedAt", sa.DateTime),
        sa.Column("AssignedBy", sa.Integer),
        sa.Column("OrderDate", sa.DateTime),
        sa.Column("ReceivedDate", sa.DateTime),
        sa.Column("DeliveredDate", sa.DateTime),
        sa.Column("AdminNotes", sa.String(1000)),
        sa.Column("SupplierNotes", sa.String(1000)),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("UpdatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("Quantity > 0", name="CK_SPO_Quantity_Positive"),
        sa.CheckConstraint(f"Status_s IN ({ORDER_STATUSES})", name="CK_SPO_Status"),
        sa.CheckConstraint("Urgency IN ('normal','high','urgent')", name="CK_SPO_Urgency"),
        sa.CheckConstraint("WarrantyStatus IN ('in_warranty','out_of_warranty')", name="CK_SPO_Warranty"),
        sa.CheckConstraint("RequesterType IN ('admin','technician')", name="CK_SPO_RequesterType"),
        sa.CheckConstraint(
            "AssignedPartnerID IS NULL OR AssignedSupplierID IS NULL", name="CK_SPO_SingleAssignee"
        ),
    )
    op.create_index("IX_SPO_Status", "SparePartOrder", ["Status_s"], unique=False)
    op.create_index("IX_SPO_ServiceID", "SparePartOrder", ["ServiceID"], unique=False)
    op.create_index("IX_SPO_TechnicianID", "SparePartOrder", ["TechnicianID"], unique=False)

    op.create_table(
        "FulfillmentTask",
        sa.Column("TaskID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("OrderID", sa.Integer, sa.ForeignKey("SparePartOrder.OrderID", ondelete="RESTRICT"), nullable=False),
        sa.Column("PartyID", sa.Integer, sa.ForeignKey("FulfillmentParty.PartyID"), nullable=False),
        sa.Column("OrderNumber", sa.String(50)),
        sa.Column("Status_s", sa.String(20), nullable=False),
        sa.Column("EstimatedDelivery", sa.DateTime),
        sa.Column("ConfirmedAt", sa.DateTime),
        sa.Column("SentAt", sa.DateTime),
        sa.Column("DeliveredAt", sa.DateTime),
        sa.Column("CancelledAt", sa.DateTime),
        sa.Column("TrackingNumber", sa.String(100)),
        sa.Column("SupplierPrice", sa.DECIMAL(10, 2)),
        sa.Column("Currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("PartyNotes", sa.String(1000)),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("UpdatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "Status_s IN ('pending','separated','sent','delivered','cancelled')", name="CK_Task_Status"
        ),
        sa.UniqueConstraint("OrderID", "PartyID", name="UQ_Task_Order_Party"),
    )
    op.create_index("IX_Task_PartyID", "FulfillmentTask", ["PartyID"], unique=False)

    # --- warehouse ---
    op.create_table(
        "StockItem",
        sa.Column("StockItemID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("OrderID", sa.Integer, sa.ForeignKey("SparePartOrder.OrderID", ondelete="RESTRICT")),
        sa.Column("PartName", sa.String(200), nullable=False),
        sa.Column("PartNumber", sa.String(100)),
        sa.Column("Quantity", sa.Integer, nullable=False),
        sa.Column("UnitCost", sa.DECIMAL(10, 2)),
        sa.Column("Location", sa.String(100)),
        sa.Column("WarrantyStatus", sa.String(20), nullable=False),
        sa.Column("SupplierName", sa.String(100)),
        sa.Column("ServiceID", sa.Integer),
        sa.Column("ClientName", sa.String(200)),
        sa.Column("ClientPhone", sa.String(50)),
        sa.Column("ApplianceInfo", sa.String(300)),
        sa.Column("ServiceDescription", sa.String(500)),
        sa.Column("AddedBy", sa.Integer, nullable=False),
        sa.Column("Notes", sa.String(1000)),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("UpdatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("Quantity >= 0", name="CK_Stock_Quantity_NonNeg"),
        sa.CheckConstraint("WarrantyStatus IN ('in_warranty','out_of_warranty')", name="CK_Stock_Warranty"),
    )
    op.create_index("IX_Stock_OrderID", "StockItem", ["OrderID"], unique=False)

    op.create_table(
        "PartsAllocation",
        sa.Column("AllocationID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("StockItemID", sa.Integer, sa.ForeignKey("StockItem.StockItemID", ondelete="RESTRICT"), nullable=False),
        sa.Column("ServiceID", sa.Integer, nullable=False),
        sa.Column("TechnicianID", sa.Integer, nullable=False),
        sa.Column("Quantity", sa.Integer, nullable=False),
        sa.Column("AllocatedBy", sa.Integer, nullable=False),
        sa.Column("Notes", sa.String(1000)),
        sa.Column("Status_s", sa.String(20), nullable=False),
        sa.Column("AllocatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("ConsumedAt", sa.DateTime),
        sa.Column("ReturnedAt", sa.DateTime),
        sa.CheckConstraint("Quantity > 0", name="CK_Alloc_Quantity_Positive"),
        sa.CheckConstraint("Status_s IN ('allocated','consumed','returned')", name="CK_Alloc_Status"),
    )
    op.create_index("IX_Alloc_ServiceID", "PartsAllocation", ["ServiceID"], unique=False)
    op.create_index("IX_Alloc_TechnicianID", "PartsAllocation", ["TechnicianID"], unique=False)

    op.create_table(
        "PartsActivityLog",
        sa.Column("LogID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("StockItemID", sa.Integer, sa.ForeignKey("StockItem.StockItemID", ondelete="RESTRICT"), nullable=False),
        sa.Column("Action", sa.String(20), nullable=False),
        sa.Column("PreviousQuantity", sa.Integer, nullable=False),
        sa.Column("NewQuantity", sa.Integer, nullable=False),
        sa.Column("TechnicianID", sa.Integer),
        sa.Column("ServiceID", sa.Integer),
        sa.Column("AllocationID", sa.Integer, sa.ForeignKey("PartsAllocation.AllocationID")),
        sa.Column("UserID", sa.Integer, nullable=False),
        sa.Column("Description", sa.String(500)),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("Action IN ('received','allocated','returned')", name="CK_Activity_Action"),
        sa.CheckConstraint("PreviousQuantity >= 0 AND NewQuantity >= 0", name="CK_Activity_Quantity_NonNeg"),
    )
    op.create_index("IX_Activity_StockItemID", "PartsActivityLog", ["StockItemID"], unique=False)

    op.create_table(
        "Notification",
        sa.Column("NotificationID", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("UserID", sa.Integer),
        sa.Column("PartyID", sa.Integer),
        sa.Column("EventType", sa.String(50), nullable=False),
        sa.Column("Title", sa.String(200), nullable=False),
        sa.Column("Message", sa.String(1000)),
        sa.Column("RelatedOrderID", sa.Integer, sa.ForeignKey("SparePartOrder.OrderID", ondelete="CASCADE")),
        sa.Column("IsRead", sa.Boolean, nullable=False, server_default=sa.text("0")),
        sa.Column("CreatedAt", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("IX_Notification_RelatedOrderID", "Notification", ["RelatedOrderID"], unique=False)


def downgrade():
    op.drop_index("IX_Notification_RelatedOrderID", table_name="Notification")
    op.drop_table("Notification")
    op.drop_index("IX_Activity_StockItemID", table_name="PartsActivityLog")
    op.drop_table("PartsActivityLog")
    op.drop_index("IX_Alloc_TechnicianID", table_name="PartsAllocation")
    op.drop_index("IX_Alloc_ServiceID", table_name="PartsAllocation")
    op.drop_table("PartsAllocation")
    op.drop_index("IX_Stock_OrderID", table_name="StockItem")
    op.drop_table("StockItem")
    op.drop_index("IX_Task_PartyID", table_name="FulfillmentTask")
    op.drop_table("FulfillmentTask")
    op.drop_index("IX_SPO_TechnicianID", table_name="SparePartOrder")
    op.drop_index("IX_SPO_ServiceID", table_name="SparePartOrder")
    op.drop_index("IX_SPO_Status", table_name="SparePartOrder")
    op.drop_table("SparePartOrder")
    op.drop_table("AppUser")
    op.drop_table("PartyBrand")
    op.drop_table("FulfillmentParty")
    op.drop_table("RepairService")
    op.drop_table("Technician")
    op.drop_table("Client")
