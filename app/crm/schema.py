import graphene

from app.crm.modules.customers.schema import CustomerMutation, CustomerQuery


class Query(CustomerQuery, graphene.ObjectType):
    pass


class Mutation(CustomerMutation, graphene.ObjectType):
    pass


schema = graphene.Schema(query=Query, mutation=Mutation)
