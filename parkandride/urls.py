# ==================== PARKANDRIDE/URLS.PY ====================
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView, TokenObtainPairView

from users.views import UserViewSet
from parking.views import MetroStationViewSet, ParkingLotViewSet, ParkingSlotViewSet
from bookings.views import ReservationViewSet
from rides.views import DriverViewSet, RideViewSet, VehicleViewSet
from payments.views import PaymentViewSet, WalletViewSet

# Create router and register viewsets
router = DefaultRouter()
router.register(r'metro-stations', MetroStationViewSet, basename='metro-station')
router.register(r'parking-lots', ParkingLotViewSet, basename='parking-lot')
router.register(r'parking-slots', ParkingSlotViewSet, basename='parking-slot')
router.register(r'reservations', ReservationViewSet, basename='reservation')
router.register(r'rides', RideViewSet, basename='ride')
router.register(r'drivers', DriverViewSet, basename='driver')
router.register(r'vehicles', VehicleViewSet, basename='vehicle')

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API versioning
    path('api/v1/', include([
        # Authentication endpoints
        path('auth/', include([
            path('register/', UserViewSet.as_view({'post': 'register'}), name='register'),
            path('login/', UserViewSet.as_view({'post': 'login'}), name='login'),
            path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
            path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
            path('profile/', UserViewSet.as_view({'get': 'profile', 'put': 'profile'}), name='profile'),
        ])),

        # Wallet
        path('wallet/', include([
            path('', WalletViewSet.as_view({'get': 'retrieve'}), name='wallet'),
            path('add/', WalletViewSet.as_view({'post': 'add'}), name='wallet_add'),
            path('redeem-points/', WalletViewSet.as_view({'post': 'redeem_points'}), name='wallet_redeem_points'),
            path('transactions/', WalletViewSet.as_view({'get': 'transactions'}), name='wallet_transactions'),
        ])),

        # Payments
        path('payments/', include([
            path('', PaymentViewSet.as_view({'get': 'list'}), name='payment_list'),
            path('orders/', PaymentViewSet.as_view({'post': 'orders'}), name='payment_orders'),
        ])),

        # API routes
        path('', include(router.urls)),
    ])),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
