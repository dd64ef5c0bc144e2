"""Merch catalog maintenance.

Keeps items and their options within the variant rules and exposes
the item detail members see, including how many more units their
purchase limits allow.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional
from uuid import UUID

import structlog
from django.utils import timezone

from modules.merch.dtos import MerchCollectionOutputDTO, MerchItemOutputDTO
from modules.merch.exceptions import (
    InvalidItemEdit,
    InvalidItemOptions,
    MerchCollectionNotFound,
    MerchItemNotFound,
    MerchItemOptionNotFound,
    OptionInUse,
)
from modules.merch.models import MerchCollection, MerchItem, MerchItemOption
from modules.merch.rules import PurchaseCounts, count_purchases, remaining_allowance
from modules.users.permissions import can_edit_merch_store

if TYPE_CHECKING:
    from modules.core.transactions import TransactionManager
    from modules.merch.dtos import (
        MerchCollectionDTO,
        MerchItemDTO,
        MerchItemEditDTO,
        MerchItemOptionDTO,
    )
    from modules.merch.unit_of_work import MerchUnitOfWork
    from modules.users.models import User

logger = structlog.get_logger(__name__)

# Item fields an edit may explicitly clear.
CLEARABLE_ITEM_FIELDS = frozenset({"monthly_limit", "lifetime_limit"})


def verify_item_has_valid_options(
    has_variants_enabled: bool, metadata: Iterable[Optional[Dict[str, Any]]]
) -> None:
    """Check the variant rules over the metadata of all of an item's options.

    Raises:
        InvalidItemOptions: the options break the rules.
    """
    metadata = list(metadata)
    if not has_variants_enabled:
        if len(metadata) > 1:
            raise InvalidItemOptions(
                "Merch items with variants disabled can have at most 1 option"
            )
        return
    if any(not m for m in metadata):
        raise InvalidItemOptions(
            "Merch options for items with variants enabled must have metadata"
        )
    if len({m["type"] for m in metadata}) > 1:
        raise InvalidItemOptions("Merch items cannot have multiple option types")


def _option_from_dto(item: MerchItem, dto: MerchItemOptionDTO) -> MerchItemOption:
    return MerchItemOption(
        item=item,
        quantity=dto.quantity,
        price=dto.price,
        discount_percentage=dto.discount_percentage,
        metadata=dto.metadata.model_dump() if dto.metadata else None,
    )


class MerchCatalogService:
    def __init__(self, transactions: TransactionManager[MerchUnitOfWork]) -> None:
        self._transactions = transactions

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def create_collection(self, dto: MerchCollectionDTO) -> MerchCollectionOutputDTO:
        with self._transactions.read_write() as uow:
            collection = uow.collections.upsert(
                MerchCollection(title=dto.title, description=dto.description)
            )
            logger.info("merch.collection_created", collection_id=str(collection.id))
            return MerchCollectionOutputDTO(
                id=collection.id,
                title=collection.title,
                description=collection.description,
                archived=collection.archived,
            )

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def create_item(self, dto: MerchItemDTO) -> MerchItemOutputDTO:
        """Raises:
        MerchCollectionNotFound: collection does not exist.
        InvalidItemOptions: options break the variant rules.
        InvalidItemEdit: a visible item is created without options.
        """
        verify_item_has_valid_options(
            dto.has_variants_enabled,
            (o.metadata.model_dump() if o.metadata else None for o in dto.options),
        )
        if not dto.hidden and not dto.options:
            raise InvalidItemEdit("Item cannot be set to visible if it has 0 options.")

        with self._transactions.read_write() as uow:
            collection = uow.collections.get_by_id(dto.collection_id)
            if collection is None:
                raise MerchCollectionNotFound("Merch collection not found")

            item = uow.items.upsert(
                MerchItem(
                    collection=collection,
                    name=dto.name,
                    description=dto.description,
                    picture_url=dto.picture_url,
                    hidden=dto.hidden,
                    has_variants_enabled=dto.has_variants_enabled,
                    monthly_limit=dto.monthly_limit,
                    lifetime_limit=dto.lifetime_limit,
                )
            )
            options = uow.options.create_many(
                [_option_from_dto(item, option) for option in dto.options]
            )
            logger.info("merch.item_created", item_id=str(item.id), options=len(options))
            return MerchItemOutputDTO.from_entity(item, options)

    def edit_item(self, item_id: UUID, dto: MerchItemEditDTO) -> MerchItemOutputDTO:
        """Apply item field changes and option edits.

        Option stock is adjusted by ``quantity_to_add``, never overwritten.

        Raises:
            MerchItemNotFound: item does not exist.
            MerchItemOptionNotFound: an edited option is not one of the item's.
            InvalidItemEdit: stock would go negative, or a visible item
                would have no options.
            InvalidItemOptions: options break the variant rules.
        """
        with self._transactions.read_write() as uow:
            item = self._get_item(uow, item_id)
            options = {option.id: option for option in uow.options.list_for_item(item.id)}

            changes = {
                field: value
                for field, value in dto.model_dump(exclude_unset=True, exclude={"options"}).items()
                if value is not None or field in CLEARABLE_ITEM_FIELDS
            }
            if changes.get("hidden") is False and not options:
                raise InvalidItemEdit("Item cannot be set to visible if it has 0 options.")

            for edit in dto.options:
                option = options.get(edit.id)
                if option is None:
                    raise MerchItemOptionNotFound(
                        f"Option {edit.id} does not belong to {item.name}"
                    )
                option_changes: Dict[str, Any] = {}
                if edit.quantity_to_add is not None:
                    quantity = option.quantity + edit.quantity_to_add
                    if quantity < 0:
                        raise InvalidItemEdit(
                            f"Cannot decrement {item.name} stock below 0 "
                            f"(currently {option.quantity})"
                        )
                    option_changes["quantity"] = quantity
                if edit.price is not None:
                    option_changes["price"] = edit.price
                if edit.discount_percentage is not None:
                    option_changes["discount_percentage"] = edit.discount_percentage
                if edit.metadata is not None:
                    option_changes["metadata"] = edit.metadata.model_dump()
                if option_changes:
                    uow.options.upsert(option, option_changes)

            verify_item_has_valid_options(
                changes.get("has_variants_enabled", item.has_variants_enabled),
                (option.metadata for option in options.values()),
            )
            if changes:
                uow.items.upsert(item, changes)
            logger.info("merch.item_edited", item_id=str(item.id), fields=sorted(changes))
            return MerchItemOutputDTO.from_entity(item, options.values())

    def create_item_option(
        self, item_id: UUID, dto: MerchItemOptionDTO
    ) -> MerchItemOutputDTO:
        """Raises:
        MerchItemNotFound: item does not exist.
        InvalidItemOptions: the new option breaks the variant rules.
        """
        with self._transactions.read_write() as uow:
            item = self._get_item(uow, item_id)
            options = uow.options.list_for_item(item.id)
            new_option = _option_from_dto(item, dto)
            verify_item_has_valid_options(
                item.has_variants_enabled,
                [o.metadata for o in options] + [new_option.metadata],
            )
            uow.options.upsert(new_option)
            logger.info("merch.option_created", item_id=str(item.id), option_id=str(new_option.id))
            return MerchItemOutputDTO.from_entity(item, options + [new_option])

    def delete_item_option(self, option_id: UUID) -> None:
        """Raises:
        MerchItemOptionNotFound: option does not exist.
        OptionInUse: option was ordered, or is the only option of a visible item.
        """
        with self._transactions.read_write() as uow:
            option = uow.options.get_by_id(option_id)
            if option is None:
                raise MerchItemOptionNotFound("Merch item option not found")
            if uow.options.has_been_ordered(option.id):
                raise OptionInUse(
                    "This item option has been ordered and cannot be deleted"
                )
            siblings = uow.options.list_for_item(option.item_id)
            if len(siblings) == 1 and not option.item.hidden:
                raise OptionInUse(
                    "Cannot delete the only option for a visible merch item"
                )
            uow.options.delete(option)
            logger.info("merch.option_deleted", option_id=str(option_id))

    def get_item(self, item_id: UUID | str, user: User) -> MerchItemOutputDTO:
        """Item detail with the viewer's remaining purchase allowance.

        Hidden items are only visible to store editors.

        Raises:
            MerchItemNotFound: item does not exist or is hidden from ``user``.
        """
        with self._transactions.read_only() as uow:
            item = self._get_item(uow, item_id)
            if item.hidden and not can_edit_merch_store(user):
                raise MerchItemNotFound("Merch item not found")
            options = uow.options.list_for_item(item.id)
            history = uow.order_items.list_purchase_history(user.pk, [item.id])
            used = count_purchases(history, timezone.now()).get(item.id, PurchaseCounts())
            return MerchItemOutputDTO.from_entity(
                item,
                options,
                monthly_remaining=remaining_allowance(item.monthly_limit, used.monthly),
                lifetime_remaining=remaining_allowance(item.lifetime_limit, used.lifetime),
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _get_item(uow: MerchUnitOfWork, item_id: UUID | str) -> MerchItem:
        item = uow.items.get_by_id(item_id)
        if item is None:
            raise MerchItemNotFound("Merch item not found")
        return item
