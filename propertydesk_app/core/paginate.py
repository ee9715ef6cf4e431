import math


class PaginatePage:
    def offset(self, page: int, per_page: int) -> int:
        return (max(page, 1) - 1) * per_page

    def get_list_json_dumps(self, paginated_props):
        return [p.model_dump(mode="json") for p in paginated_props]

    def envelope(self, items: list, page: int, per_page: int, total: int) -> dict:
        return {
            "items": items,
            "pagination": {
                "current_page": page,
                "items_per_page": per_page,
                "total_items": total,
                "total_pages": math.ceil(total / per_page) if per_page else 0,
            },
        }
