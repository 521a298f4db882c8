from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

# ==============================================================================
# DRF ROUTER
# ==============================================================================
router = DefaultRouter(trailing_slash=False)
router.register(r'reservations', views.ReservationViewSet, basename='reservation')
router.register(r'tables', views.TableViewSet, basename='table')
router.register(r'users', views.CustomUserViewSet, basename='user')

# ==============================================================================
# URL PATTERNS
# ==============================================================================
app_name = 'core'

urlpatterns = [
    path('', views.home, name='home'),
    path('api/', include(router.urls)),
]
