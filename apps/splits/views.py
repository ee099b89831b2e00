from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticatedOrReadOnly
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.companies.exceptions import CompanyServiceError
from apps.companies.services import get_owned_company
from config.views import service_error_response

from .exceptions import SplitServiceError
from .serializers import (
    CompanyActionSerializer,
    SplitCreateSerializer,
    SplitFilterSerializer,
    SplitListSerializer,
    SplitSerializer,
)
from .services import build_split_service


class SplitViewSet(viewsets.ViewSet):
    """
    ViewSet for split lifecycle operations.

    All business logic is handled by SplitService.
    Views are thin HTTP handlers only: they check that the authenticated
    user owns the company named in the request, then call the service.

    list: Browse splits (filter by type, status, location, company)
    create: Create a split (organizer takes the first slot)
    retrieve: Get a split with its participants
    destroy: Delete a split (organizer only)
    join / leave / cancel: Slot and status transitions
    """

    permission_classes = [IsAuthenticatedOrReadOnly]

    @property
    def service(self):
        return build_split_service()

    def _acting_company_id(self, request, data=None):
        """Validate company_id and confirm the user owns that company."""
        serializer = CompanyActionSerializer(data=data if data is not None else request.data)
        serializer.is_valid(raise_exception=True)
        company = get_owned_company(user=request.user, company_id=serializer.validated_data['company_id'])
        return str(company.id)

    @extend_schema(parameters=[SplitFilterSerializer], responses={200: SplitListSerializer(many=True)})
    def list(self, request):
        """List splits, newest first."""
        filter_serializer = SplitFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        company_id = params.get('company_id')
        splits = self.service.list_splits(
            type=None if params.get('type') in (None, 'all') else params['type'],
            status=None if params.get('status') in (None, 'all') else params['status'],
            company_id=str(company_id) if company_id else None,
            location=params.get('location') or None,
        )
        return Response(SplitListSerializer(splits, many=True).data)

    @extend_schema(responses={200: SplitSerializer})
    def retrieve(self, request, pk=None):
        """Get a split with its participants."""
        try:
            split = self.service.get_split(split_id=pk)
        except SplitServiceError as e:
            return service_error_response(e)
        return Response(SplitSerializer(split).data)

    @extend_schema(request=SplitCreateSerializer, responses={201: SplitSerializer})
    def create(self, request):
        """Create a new split."""
        serializer = SplitCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        try:
            organizer = get_owned_company(user=request.user, company_id=data.pop('organizer_id'))
            split = self.service.create_split(organizer_id=str(organizer.id), **data)
        except (CompanyServiceError, SplitServiceError) as e:
            return service_error_response(e)

        return Response(SplitSerializer(split).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=CompanyActionSerializer, responses={204: None})
    def destroy(self, request, pk=None):
        """Delete a split (organizer only, any status)."""
        data = request.data or request.query_params
        try:
            company_id = self._acting_company_id(request, data=data)
            self.service.delete_split(split_id=pk, requester_id=company_id)
        except (CompanyServiceError, SplitServiceError) as e:
            return service_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=CompanyActionSerializer, responses={200: SplitSerializer})
    @action(detail=True, methods=['post'])
    def join(self, request, pk=None):
        """Join a split; the last slot makes it full."""
        try:
            company_id = self._acting_company_id(request)
            split = self.service.join_split(split_id=pk, company_id=company_id)
        except (CompanyServiceError, SplitServiceError) as e:
            return service_error_response(e)

        data = SplitSerializer(split).data
        data['message'] = (
            'Split is now full! Payment collection will begin.'
            if split.filled_slots == split.slots
            else 'Successfully joined split'
        )
        return Response(data)

    @extend_schema(request=CompanyActionSerializer, responses={200: SplitSerializer})
    @action(detail=True, methods=['post'])
    def leave(self, request, pk=None):
        """Leave a split before paying."""
        try:
            company_id = self._acting_company_id(request)
            split = self.service.leave_split(split_id=pk, company_id=company_id)
        except (CompanyServiceError, SplitServiceError) as e:
            return service_error_response(e)
        return Response(SplitSerializer(split).data)

    @extend_schema(request=CompanyActionSerializer, responses={200: SplitSerializer})
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel an open split nobody has paid for (organizer only)."""
        try:
            company_id = self._acting_company_id(request)
            split = self.service.cancel_split(split_id=pk, requester_id=company_id)
        except (CompanyServiceError, SplitServiceError) as e:
            return service_error_response(e)
        return Response(SplitSerializer(split).data)
