"""Ошибки предметной области; роутеры переводят их в HTTP-ответы."""
from bakery.models.order import OrderStatus


class FulfillmentError(Exception):
    pass


class OrderNotFound(FulfillmentError):
    def __init__(self, order_id: str):
        super().__init__(f"Заказ {order_id} не найден")
        self.order_id = order_id


class ProductNotFound(FulfillmentError):
    def __init__(self, product_id: str):
        super().__init__(f"Продукт {product_id} не найден")
        self.product_id = product_id


class InvalidTransition(FulfillmentError):
    def __init__(self, current: OrderStatus, new: OrderStatus):
        super().__init__(f"Переход из {current.value} в {new.value} невозможен")
        self.current = current
        self.new = new


class VerificationNotAllowed(FulfillmentError):
    def __init__(self, order_id: str, reason: str):
        super().__init__(f"Заказ {order_id}: {reason}")
        self.order_id = order_id
