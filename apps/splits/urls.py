from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'splits'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.SplitViewSet, basename='split')

urlpatterns = [
    # Split ViewSet routes
    # GET    /api/splits/               - List splits (type, status, location, company_id)
    # POST   /api/splits/               - Create split
    # GET    /api/splits/{id}/          - Get split details
    # DELETE /api/splits/{id}/          - Delete split (organizer)

    # Custom split actions
    # POST   /api/splits/{id}/join/     - Join with company_id
    # POST   /api/splits/{id}/leave/    - Leave before paying
    # POST   /api/splits/{id}/cancel/   - Cancel (organizer)

    # Include router URLs
    path('', include(router.urls)),
]
