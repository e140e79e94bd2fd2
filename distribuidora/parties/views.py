from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from .models import Customer
from .serializers import CustomerSerializer
from distribuidora.core.permissions import is_admin_user
from distribuidora.core.utils import create_audit_log


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        queryset = Customer.objects.all()
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))
        serializer = CustomerSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            customer = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Customer',
                object_id=customer.id,
                object_name=customer.name,
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_search(request):
    """Search customers whose phone contains the given digits"""
    phone = (request.query_params.get('phone', '') or '').strip()
    if not phone:
        return Response({'error': 'phone query parameter is required'}, status=status.HTTP_400_BAD_REQUEST)
    customers = Customer.objects.filter(phone__icontains=phone)
    serializer = CustomerSerializer(customers, many=True)
    return Response(serializer.data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer (delete is admin-only)"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        serializer = CustomerSerializer(customer)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Customer',
                object_id=customer.id,
                object_name=customer.name,
                changes=dict(serializer.validated_data),
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not is_admin_user(request.user):
            return Response({'error': 'Only administrators can delete customers'}, status=status.HTTP_403_FORBIDDEN)
        create_audit_log(
            request=request,
            action='delete',
            model_name='Customer',
            object_id=customer.id,
            object_name=customer.name,
        )
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
