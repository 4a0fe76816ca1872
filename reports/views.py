# reports/views.py
import logging

from django.http import HttpResponse
from django.utils import timezone
from rest_framework import serializers
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminRole
from reports.services.report_service import REPORT_TYPES, ReportService

logger = logging.getLogger(__name__)


class ReportRequestSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=REPORT_TYPES)
    startDate = serializers.DateField(source='start_date', required=False)
    endDate = serializers.DateField(source='end_date', required=False)
    format = serializers.ChoiceField(choices=['json', 'csv'], default='json')


class ReportView(APIView):
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = ReportRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        report_type = data['type']
        start_date = data.get('start_date')
        end_date = data.get('end_date')

        service = ReportService()
        rows = service.build(report_type, start_date, end_date)
        logger.info(f"Admin {request.user.email} generated {report_type} report with {len(rows)} records")

        if data['format'] == 'csv':
            response = HttpResponse(service.to_csv(rows), content_type='text/csv')
            filename = f"{report_type}_report_{timezone.localdate().isoformat()}.csv"
            response['Content-Disposition'] = f'attachment; filename="{filename}"'
            return response

        return Response({
            'message': f'{report_type} report generated successfully',
            'type': report_type,
            'totalRecords': len(rows),
            'data': rows,
            'generatedAt': timezone.now().isoformat(),
            'generatedBy': request.user.email,
            'dateRange': {
                'startDate': start_date,
                'endDate': end_date,
                'filterApplied': bool(start_date or end_date),
            },
        })


class DashboardView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        return Response(ReportService().dashboard())
