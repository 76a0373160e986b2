from dataclasses import dataclass

from aftercommit import AfterCommit, transactional


@dataclass
class OrderPlaced:
    order_id: int


def send_confirmation(event: OrderPlaced):
    print(f"Order {event.order_id} confirmed")


def run():
    app = AfterCommit(transactional=[__name__])
    app.dispatcher.listen(OrderPlaced, send_confirmation)
    connection = app.connection()

    with connection.transaction():
        app.dispatcher.dispatch(OrderPlaced(1))
        transactional(lambda: print("Runs after the commit"))
        print("Still inside the transaction")

    try:
        with connection.transaction():
            app.dispatcher.dispatch(OrderPlaced(2))
            raise RuntimeError("Payment declined")
    except RuntimeError:
        print("Order 2 was never confirmed")


run()
