"""Mixed storefront workload scenario.

Combines the checkout journeys with weights that model a storefront where
most buyers pay by card, a good share by QR, and the rest on delivery.
"""

from locust import HttpUser, between

from loadtests.scenarios.checkout import CardCheckoutJourney, CashOnDeliveryJourney, QrCheckoutJourney


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload across every payment method.

    Card (50%): synchronous settlement, declines included when the fake
    gateway is configured to decline.
    QR (30%): source creation followed by a signed webhook.
    Cash on delivery (20%): seller confirms, ships and delivers.
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        CardCheckoutJourney: 5,
        QrCheckoutJourney: 3,
        CashOnDeliveryJourney: 2,
    }
